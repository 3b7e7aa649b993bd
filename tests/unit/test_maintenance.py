"""
Unit tests for the maintenance script.
"""

import pytest
from datetime import timedelta

from scripts.maintenance import main, parse_args
from services.trust_safety.models.base import utcnow
from services.trust_safety.models.warning import WarningStatus
from shared.database.mongodb import Collections
from shared.store import MockDocumentStore


class TestParseArgs:
    """Tests for job selection."""

    def test_no_flags_runs_everything(self) -> None:
        assert parse_args([]).all is True

    def test_single_job(self) -> None:
        args = parse_args(["--expire-warnings"])

        assert args.expire_warnings is True
        assert args.all is False

    def test_cleanup_days(self) -> None:
        args = parse_args(["--cleanup-days", "30"])

        assert args.cleanup_days == 30
        assert args.all is False

    def test_cleanup_days_must_be_positive(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--cleanup-days", "0"])


class TestMain:
    @pytest.mark.asyncio
    async def test_expire_job(self, store: MockDocumentStore) -> None:
        past = utcnow() - timedelta(days=1)
        await store.insert_one(
            Collections.WARNINGS,
            {
                "_id": "w1",
                "user_id": "u1",
                "profile_id": "p1",
                "issued_by": "a1",
                "category": "misconduct",
                "severity": "minor",
                "reason": "Test",
                "status": "active",
                "is_active": True,
                "issued_at": past - timedelta(days=90),
                "expires_at": past,
                "version": 0,
            },
        )

        exit_code = await main(parse_args(["--expire-warnings"]))

        assert exit_code == 0
        document = await store.find_one(Collections.WARNINGS, {"_id": "w1"})
        assert document["status"] == WarningStatus.EXPIRED.value
        assert document["is_active"] is False

    @pytest.mark.asyncio
    async def test_all_jobs_on_empty_store(self, store: MockDocumentStore) -> None:
        assert await main(parse_args(["--all"])) == 0
