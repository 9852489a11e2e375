import pytest

from irismod.datatypes.identifiers import ActorID, TenantID, clean_reference, is_snowflake


def test_snowflake_accepts_int_str_and_mentions() -> None:
    raw = 123456789012345678
    assert ActorID(raw) == ActorID(str(raw))
    assert ActorID(f"<@!{raw}>") == raw
    assert ActorID(f"<@{raw}>").to_int() == raw
    assert int(ActorID(ActorID(raw))) == raw
    assert str(ActorID(raw)) == str(raw)


def test_different_identifier_types_never_compare_equal() -> None:
    assert ActorID(1) != TenantID(1)


def test_identifiers_hash_by_value() -> None:
    assert len({ActorID(5), ActorID("5")}) == 1


@pytest.mark.parametrize("value", [True, 1.5, None, "not-a-number"])
def test_invalid_identifier_values(value) -> None:
    with pytest.raises(ValueError):
        ActorID(value)


def test_reference_helpers() -> None:
    assert clean_reference("<@&123>") == "123"
    assert is_snowflake("<@123456789012345678>")
    assert not is_snowflake("1234")
    assert not is_snowflake("someone")
