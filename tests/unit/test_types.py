"""Tests for core types."""

import pytest
from pydantic import SecretStr

from askdb.core.types import (
    AccessMode,
    ConnectionProfile,
    ConnectionRecord,
    EngineKind,
    PipelineTrace,
    QueryResult,
    QueryState,
)


class TestEnums:
    def test_engine_values(self):
        assert EngineKind.values() == ["postgresql", "mysql", "sqlite", "mongodb"]

    def test_access_mode_values(self):
        """Access modes are ordered from most to least restrictive."""
        assert AccessMode.values() == ["read", "write", "update", "full"]

    def test_from_string(self):
        assert AccessMode("read") is AccessMode.READ
        assert EngineKind("postgresql") is EngineKind.POSTGRESQL


class TestSecrets:
    """Passwords never leak through repr or public dicts."""

    def test_record_repr(self, record):
        assert "s3cr3t-pw" not in repr(record)
        assert "s3cr3t-pw" not in str(record.model_dump())

    def test_record_public_dict(self, record):
        data = record.public_dict()
        assert "password" not in data
        assert data["access_mode"] == "read"
        assert data["engine"] == "postgresql"

    def test_profile_public_dict(self, profile):
        assert "password" not in profile.public_dict()
        assert profile.password.get_secret_value() == "s3cr3t-pw"

    def test_profile_is_frozen(self, profile):
        with pytest.raises(ValueError):
            profile.host = "elsewhere"

    def test_with_tls(self, profile):
        secured = profile.with_tls(True)
        assert secured.requires_tls is True
        assert profile.requires_tls is False
        assert secured.password == profile.password

    def test_record_defaults(self):
        record = ConnectionRecord(
            id="x", host="h", port=1, database="d", username="u", password=SecretStr("p")
        )
        assert record.engine is EngineKind.POSTGRESQL
        assert record.access_mode is AccessMode.READ


class TestPipelineTrace:
    """Tests for PipelineTrace state tracking."""

    def test_starts_idle(self):
        assert PipelineTrace().state is QueryState.IDLE

    def test_advance(self):
        trace = PipelineTrace()
        trace.advance(QueryState.SCHEMA_LOADED)
        trace.advance(QueryState.SQL_GENERATED)
        assert trace.states == [QueryState.IDLE, QueryState.SCHEMA_LOADED, QueryState.SQL_GENERATED]

    def test_states_not_reentered(self):
        trace = PipelineTrace()
        trace.advance(QueryState.SCHEMA_LOADED)
        with pytest.raises(ValueError, match="already visited"):
            trace.advance(QueryState.SCHEMA_LOADED)

    def test_fail(self):
        trace = PipelineTrace()
        trace.advance(QueryState.SCHEMA_LOADED)
        trace.fail("boom")
        trace.fail("boom again")
        assert trace.states[-1] is QueryState.FAILED
        assert trace.states.count(QueryState.FAILED) == 1
        assert trace.failure_reason == "boom again"

    def test_running_stage(self):
        """The running stage is the one after the last completed state."""
        trace = PipelineTrace()
        assert trace.running_stage == "loading schema"
        trace.advance(QueryState.SCHEMA_LOADED)
        assert trace.running_stage == "generating SQL"
        trace.fail("boom")
        assert trace.running_stage is None


class TestQueryResult:
    def test_defaults(self):
        result = QueryResult(sql="SELECT 1")
        assert result.columns == []
        assert result.rows == []
        assert result.row_count == 0
        assert result.execution_time_ms == 0.0

    def test_profile_construction(self):
        profile = ConnectionProfile(
            host="h", port=5432, database="d", username="u", password=SecretStr("p")
        )
        assert profile.access_mode is AccessMode.READ
        assert profile.requires_tls is False
