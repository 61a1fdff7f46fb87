"""Unit tests for the JSON-backed ThrottleRepository."""
import json
import os
import threading
from datetime import datetime, timedelta, timezone

import pytest

from shield.domain.enums import IdentifierType
from shield.infrastructure.repositories.throttle_repository import ThrottleRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
LATER = NOW + timedelta(minutes=15)


@pytest.fixture
def repo(tmp_path):
    return ThrottleRepository(data_path=str(tmp_path / "store" / "throttles.json"))


class TestIncrement:
    def test_creates_directory_and_file(self, repo):
        repo.increment("1.2.3.4", None, NOW, block_at=5, block_until=LATER)
        assert os.path.exists(repo._data_path)

    def test_file_is_valid_json_keyed_by_type(self, repo):
        repo.increment("a@b.com", IdentifierType.EMAIL, NOW, block_at=5, block_until=LATER)
        with open(repo._data_path) as f:
            data = json.load(f)
        assert "email:a@b.com" in data
        assert data["email:a@b.com"]["attempts"] == 1

    def test_blocks_when_reaching_threshold(self, repo):
        for _ in range(2):
            record = repo.increment("1.2.3.4", None, NOW, block_at=3, block_until=LATER)
        assert not record.blocked
        record = repo.increment("1.2.3.4", None, NOW, block_at=3, block_until=LATER)
        assert record.blocked
        assert record.blocked_until == LATER

    def test_no_tmp_file_left_behind(self, repo):
        repo.increment("1.2.3.4", None, NOW, block_at=5, block_until=LATER)
        assert not os.path.exists(f"{repo._data_path}.tmp")

    def test_concurrent_increments_are_not_lost(self, repo):
        """20 threads fail at once -- every attempt is counted."""
        errors = []

        def fail():
            try:
                repo.increment("1.2.3.4", None, NOW, block_at=100, block_until=LATER)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=fail) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert repo.find("1.2.3.4").attempts == 20


class TestPersistence:
    def test_state_survives_a_new_instance(self, repo):
        repo.increment("1.2.3.4", None, NOW, block_at=1, block_until=LATER)
        reopened = ThrottleRepository(data_path=repo._data_path)
        record = reopened.find("1.2.3.4")
        assert record.blocked
        assert record.blocked_until == LATER

    def test_two_instances_share_the_file(self, repo):
        other = ThrottleRepository(data_path=repo._data_path)
        repo.increment("1.2.3.4", None, NOW, block_at=5, block_until=LATER)
        other.increment("1.2.3.4", None, NOW, block_at=5, block_until=LATER)
        assert repo.find("1.2.3.4").attempts == 2

    def test_get_all(self, repo):
        repo.clear("a")
        repo.clear("b", IdentifierType.USER)
        assert {r.key for r in repo.get_all()} == {"a", "user:b"}

    def test_corrupt_file_raises(self, repo):
        os.makedirs(os.path.dirname(repo._data_path), exist_ok=True)
        with open(repo._data_path, "w") as f:
            f.write("{not json")
        with pytest.raises(json.JSONDecodeError):
            repo.find("1.2.3.4")


class TestLiftBlock:
    def test_missing_record_is_not_created(self, repo):
        assert repo.lift_block("ghost", None, NOW) is False
        assert repo.find("ghost") is None

    def test_active_block_is_kept(self, repo):
        repo.block("1.2.3.4", None, LATER)
        assert repo.lift_block("1.2.3.4", None, NOW) is False
        assert repo.find("1.2.3.4").blocked

    def test_expired_block_is_lifted(self, repo):
        repo.increment("1.2.3.4", None, NOW, block_at=1, block_until=LATER)
        assert repo.lift_block("1.2.3.4", None, LATER + timedelta(seconds=1)) is True
        record = repo.find("1.2.3.4")
        assert not record.blocked
        assert record.blocked_until is None
        assert record.attempts == 0
