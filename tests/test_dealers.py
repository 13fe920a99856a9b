from dealer_outlook.dealers import DealerConfig, DealerDirectory, read_yearly_target

SNAPSHOT = {
    "example-dealer": {"name": "Example Dealer", "initialTarget2026": "120"},
    "snowy-river": {"name": "Snowy River", "isActive": False},
    "north-group": {
        "name": "North Group",
        "isGroup": True,
        "includedDealers": {"0": "Example Dealer", "1": "snowy-river"},
    },
}


def test_from_payload_defaults():
    config = DealerConfig.from_payload("Some Dealer", None)
    assert config.slug == "some-dealer"
    assert config.name == "Some Dealer"
    assert config.active is True
    assert config.is_group is False
    assert config.yearly_target == 0.0


def test_read_yearly_target_uses_first_alias_present():
    assert read_yearly_target({"initialTarget": 5, "target2026": 9}) == 5.0
    assert read_yearly_target({"targetYearly2026": "bad"}) == 0.0
    assert read_yearly_target({}) == 0.0


def test_directory_active_excludes_inactive_and_groups():
    directory = DealerDirectory.from_snapshot(SNAPSHOT)
    assert len(directory) == 3
    assert [d.slug for d in directory.active()] == ["example-dealer"]
    assert [d.slug for d in directory.active(include_groups=True)] == ["example-dealer", "north-group"]


def test_get_accepts_access_code_suffix():
    directory = DealerDirectory.from_snapshot(SNAPSHOT)
    assert directory.get("snowy-river-ab12cd").name == "Snowy River"
    assert directory.get("example-dealer").yearly_target == 120.0
    assert directory.get("nobody") is None


def test_scope_expands_groups():
    directory = DealerDirectory.from_snapshot(SNAPSHOT)
    assert directory.scope("north-group") == ["example-dealer", "snowy-river"]
    assert directory.scope("example-dealer") == ["example-dealer"]
    assert directory.scope(None) is None
    assert directory.scope("  ") is None


def test_scope_keeps_unknown_selector_as_given():
    directory = DealerDirectory.from_snapshot({})
    assert directory.scope("Example Dealer") == ["example-dealer"]


def test_scope_strips_access_code_when_only_the_dealer_is_known():
    directory = DealerDirectory.from_snapshot({})
    known = ["example-dealer", "snowy-river"]

    assert directory.scope("example-dealer-ab12cd", known_slugs=known) == ["example-dealer"]
    assert directory.scope("example-dealer", known_slugs=known) == ["example-dealer"]
    assert directory.scope("example-dealer-ab12cd") == ["example-dealer-ab12cd"]


def test_yearly_target_follows_the_comparison_year():
    payload = {"initialTarget2026": 3, "target2027": 7}
    assert read_yearly_target(payload) == 3.0
    assert read_yearly_target(payload, 2027) == 7.0
    assert read_yearly_target({"initialTarget": 5}, 2030) == 5.0

    directory = DealerDirectory.from_snapshot({"example-dealer": payload}, year=2027)
    assert directory.get("example-dealer").yearly_target == 7.0
