"""Seed data for the in-memory backend, loaded from a YAML file.

With ledger_backend="memory" there is no database behind the API, so
accounts and tutoring requests come from TUTORLINK_MEMORY_SEED_PATH.
See seed.example.yaml for the format.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from modules.requests.models import TutoringRequest


@dataclass
class SeedUser:
    """An account known to the in-memory ledger.

    Attributes:
        id: User ID as it appears in the Supabase JWT "sub" claim
        email: Email payment events are resolved by
        balance: Opening coin balance
    """

    id: str
    email: str
    balance: int = 0


@dataclass
class MemorySeed:
    """Everything needed to start the in-memory backend."""

    users: list[SeedUser] = field(default_factory=list)
    requests: list[TutoringRequest] = field(default_factory=list)


def _parse_users(entries: list[dict]) -> list[SeedUser]:
    users = []
    for entry in entries:
        balance = int(entry.get("balance", 0))
        if balance < 0:
            raise ValueError(f"Seed user {entry.get('id')} has a negative balance")
        users.append(SeedUser(id=str(entry["id"]), email=entry["email"], balance=balance))
    return users


def load_seed(seed_path: Path) -> MemorySeed:
    """Load seed data from a YAML file.

    Args:
        seed_path: Path to the YAML seed file

    Returns:
        Parsed MemorySeed

    Raises:
        FileNotFoundError: If the seed file doesn't exist
        yaml.YAMLError: If the seed file is invalid YAML
        KeyError: If a user entry lacks id or email
        ValueError: If a user has a negative balance or a request is invalid
    """
    with open(seed_path) as f:
        data = yaml.safe_load(f) or {}

    return MemorySeed(
        users=_parse_users(data.get("users") or []),
        requests=[TutoringRequest.model_validate(r) for r in data.get("requests") or []],
    )
