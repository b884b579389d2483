"""
Unit tests for session and user record models.
"""

from datetime import datetime, timezone

from whawty_admin.models import (
    CredentialFormat,
    Session,
    UserRecord,
    format_timestamp,
    parse_timestamp,
)


class TestParseTimestamp:
    """Test RFC 3339 parsing of server timestamps."""

    def test_utc_suffix(self):
        assert parse_timestamp("2023-01-01T00:00:00Z") == datetime(2023, 1, 1, tzinfo=timezone.utc)

    def test_nanoseconds_are_truncated(self):
        parsed = parse_timestamp("2023-05-06T07:08:09.123456789+02:00")
        assert parsed.microsecond == 123456
        assert parsed.utcoffset().total_seconds() == 7200

    def test_short_fraction(self):
        assert parse_timestamp("2023-05-06T07:08:09.5Z").microsecond == 500000

    def test_naive_is_treated_as_utc(self):
        assert parse_timestamp("2023-05-06T07:08:09").tzinfo == timezone.utc

    def test_empty_and_garbage(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None
        assert parse_timestamp("yesterday") is None


class TestFormatTimestamp:

    def test_local_display_format(self):
        value = datetime(2023, 1, 1, 12, 30, 5, tzinfo=timezone.utc)
        assert format_timestamp(value) == value.astimezone().strftime("%d.%m.%Y %H:%M:%S")

    def test_unknown_and_zero_time(self):
        assert format_timestamp(None) == "-"
        assert format_timestamp(parse_timestamp("0001-01-01T00:00:00Z")) == "-"


class TestSession:
    """Test the persisted session record layout."""

    def test_record_layout(self):
        session = Session(
            username="admin",
            is_admin=True,
            last_changed=datetime(2023, 1, 1, tzinfo=timezone.utc),
            token="tok",
        )
        assert session.to_record() == {
            "username": "admin",
            "admin": True,
            "lastchanged": "2023-01-01T00:00:00+00:00",
            "session": "tok",
        }
        assert Session.from_record(session.to_record()) == session

    def test_missing_token_is_not_a_session(self):
        assert Session.from_record({"username": "admin", "admin": True}) is None

    def test_missing_username_is_not_a_session(self):
        assert Session.from_record({"session": "tok", "admin": True}) is None

    def test_admin_flag_must_be_true(self):
        session = Session.from_record({"username": "bob", "session": "tok", "admin": "true"})
        assert session.is_admin is False
        assert session.role_label == "User"


class TestUserRecord:
    """Test parsing of list-full entries."""

    def test_full_entry(self):
        record = UserRecord.from_api("alice", {
            "admin": True,
            "valid": True,
            "supported": False,
            "formatid": "argon2id",
            "formatparams": "3",
            "lastchanged": "2023-01-01T00:00:00Z",
        })
        assert record.name == "alice"
        assert record.is_admin is True
        assert record.is_valid is True
        assert record.is_supported is False
        assert record.credential_format == CredentialFormat("argon2id", "3")
        assert str(record.credential_format) == "argon2id (3)"

    def test_paramid_alias(self):
        record = UserRecord.from_api("bob", {"formatid": "scrypt", "paramid": 2})
        assert str(record.credential_format) == "scrypt (2)"

    def test_brief_entry_defaults(self):
        record = UserRecord.from_api("carol", {"admin": False})
        assert record.is_valid is False
        assert record.is_supported is False
        assert record.last_changed is None
