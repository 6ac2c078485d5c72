"""Tests for loading memory backend seed data."""

from pathlib import Path

import pytest
import yaml

from api.seed import MemorySeed, load_seed
from modules.requests.models import Urgency


SEED_YAML = """
users:
  - id: user-1
    email: tutor@example.com
    balance: 50
  - id: user-2
    email: other@example.com
requests:
  - id: req-1
    title: Calculus help
    urgency: within a week
    price_amount: 600
    subjects: [Mathematics]
    created_at: "2024-06-05T12:00:00Z"
    contact:
      name: Asha
      email: asha@example.com
"""


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "seed.yaml"
    path.write_text(text)
    return path


class TestLoadSeed:
    def test_loads_users_and_requests(self, tmp_path):
        seed = load_seed(write(tmp_path, SEED_YAML))

        assert [(u.id, u.email, u.balance) for u in seed.users] == [
            ("user-1", "tutor@example.com", 50),
            ("user-2", "other@example.com", 0),
        ]
        request = seed.requests[0]
        assert request.id == "req-1"
        assert request.urgency is Urgency.WITHIN_A_WEEK
        assert request.subjects == ["Mathematics"]
        assert request.created_at.tzinfo is not None
        assert request.contact.email == "asha@example.com"

    def test_empty_file(self, tmp_path):
        assert load_seed(write(tmp_path, "")) == MemorySeed()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_seed(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(yaml.YAMLError):
            load_seed(write(tmp_path, "users: [unclosed"))

    def test_user_without_email(self, tmp_path):
        with pytest.raises(KeyError):
            load_seed(write(tmp_path, "users:\n  - id: user-1\n"))

    def test_negative_balance(self, tmp_path):
        with pytest.raises(ValueError):
            load_seed(write(tmp_path, "users:\n  - id: u\n    email: u@x.com\n    balance: -5\n"))

    def test_example_seed_file_loads(self):
        example = Path(__file__).resolve().parents[2] / "seed.example.yaml"

        seed = load_seed(example)

        assert len(seed.users) == 2
        assert len(seed.requests) == 2
