"""Shared test fixtures for Homeport tests."""
from collections import deque
from typing import Dict, List, Optional, Tuple

import pytest

from homeport.core.config import HomeportConfig, set_config
from homeport.core.errors import DNSProviderError
from homeport.core.prompts import Prompter
from homeport.core.runner import CommandResult
from homeport.models.dns import DNSRecord, Zone


class FakeRunner:
    """CommandRunner stand-in that records calls and replays scripted results.

    Responses are matched by the longest registered argv prefix; anything
    unregistered succeeds with empty output.
    """

    def __init__(self, missing: Tuple[str, ...] = ()):
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[str]] = []
        self.responses: Dict[Tuple[str, ...], CommandResult] = {}
        self.missing = missing

    def on(self, prefix, returncode: int = 0, stdout: str = "", stderr: str = "") -> "FakeRunner":
        prefix = tuple(prefix)
        self.responses[prefix] = CommandResult(list(prefix), returncode, stdout, stderr)
        return self

    def run(self, args, cwd=None, timeout=None) -> CommandResult:
        argv = [str(a) for a in args]
        self.calls.append(argv)
        self.cwds.append(str(cwd) if cwd else None)

        best = None
        for prefix in self.responses:
            if tuple(argv[:len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return CommandResult(argv, 0)
        scripted = self.responses[best]
        return CommandResult(argv, scripted.returncode, scripted.stdout, scripted.stderr)

    def which(self, name: str) -> Optional[str]:
        return None if name in self.missing else f"/usr/bin/{name}"

    def called(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[:len(prefix)]) == prefix]


class ScriptedPrompter(Prompter):
    """Prompter that answers from a queue and records every question."""

    def __init__(self, answers=()):
        super().__init__()
        self.answers = deque(answers)
        self.questions: List[str] = []

    def _next(self, message: str):
        self.questions.append(message)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self.answers.popleft()

    def ask(self, message, default=None, validator=None, error_message="", secret=False) -> str:
        answer = self._next(message)
        if answer is None:
            answer = default or ""
        if validator is not None and not validator(answer):
            raise AssertionError(f"Scripted answer {answer!r} rejected for: {message}")
        return answer

    def confirm(self, message, default=False) -> bool:
        return bool(self._next(message))

    def select(self, message, choices, default=0) -> int:
        return self._next(message)

    def multi_select(self, message, choices) -> List[int]:
        return list(self._next(message))


class FakeDNSClient:
    """In-memory DNS provider API with a call log."""

    def __init__(self, zones=None, records=None, valid: bool = True):
        self.zones = list(zones or [])
        self.records: List[DNSRecord] = list(records or [])
        self.valid = valid
        self.calls: List[Tuple] = []
        self.failures: Dict[str, DNSProviderError] = {}
        self._next_id = 100

    def fail(self, method: str, status_code: int = 400, body: str = '{"success":false}') -> None:
        self.failures[method] = DNSProviderError(
            f"{method} returned HTTP {status_code}", status_code=status_code, body=body,
        )

    def _check(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    def verify_token(self) -> bool:
        self.calls.append(("verify_token",))
        return self.valid

    def list_zones(self) -> List[Zone]:
        self.calls.append(("list_zones",))
        self._check("list_zones")
        return list(self.zones)

    def list_records(self, zone_id, name, record_type) -> List[DNSRecord]:
        self.calls.append(("list_records", zone_id, name, record_type))
        self._check("list_records")
        return [r for r in self.records if r.name == name and r.type == record_type]

    def create_record(self, zone_id, name, record_type, content, ttl=300, proxied=False):
        self.calls.append(("create_record", zone_id, name, record_type, content, ttl, proxied))
        self._check("create_record")
        self._next_id += 1
        record = DNSRecord(id=str(self._next_id), type=record_type, name=name, content=content, proxied=proxied, ttl=ttl)
        self.records.append(record)
        return {"success": True, "result": record.model_dump()}

    def update_record(self, zone_id, record_id, content):
        self.calls.append(("update_record", zone_id, record_id, content))
        self._check("update_record")
        self.records = [
            r.model_copy(update={"content": content}) if r.id == record_id else r
            for r in self.records
        ]
        return {"success": True}

    def delete_record(self, zone_id, record_id):
        self.calls.append(("delete_record", zone_id, record_id))
        self._check("delete_record")
        self.records = [r for r in self.records if r.id != record_id]
        return {"success": True}

    def mutations(self) -> List[Tuple]:
        return [c for c in self.calls if c[0] in ("create_record", "update_record", "delete_record")]


class FakeTokenStore:
    def __init__(self, token: Optional[str] = None):
        self.token = token
        self.saved: List[str] = []
        self.is_legacy = False

    def load(self) -> Optional[str]:
        return self.token

    def save(self, token: str):
        self.saved.append(token)
        self.token = token


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temporary directory with no startup waits."""
    cfg = HomeportConfig(config_dir=tmp_path / ".homeport", startup_grace=0)
    set_config(cfg)
    yield cfg
    set_config(None)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def zone():
    return Zone(id="zone-1", name="example.com", status="active")


@pytest.fixture
def dns_client(zone):
    return FakeDNSClient(zones=[zone])


def record(record_id, record_type, name, content, proxied=False):
    """Build a provider record for test setups."""
    return DNSRecord(id=record_id, type=record_type, name=name, content=content, proxied=proxied)
