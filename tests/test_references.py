import re
import uuid

import pytest

from jobkeeper.errors import InvalidArgumentError
from jobkeeper.references import JobReferenceGenerator, validate_job_id
from jobkeeper.settings import IdentityRules


def test_generate_returns_valid_identity() -> None:
    generator = JobReferenceGenerator()

    identity = generator.generate("proj1", "export-job")

    assert identity.scope == "proj1"
    assert identity.job_id.startswith("export-job-")
    assert re.fullmatch(r"[A-Za-z0-9_-]+", identity.job_id)
    assert len(identity.job_id) <= 1024


def test_generate_is_unique_per_call() -> None:
    generator = JobReferenceGenerator()

    ids = {generator.generate("proj1", "export-job").job_id for _ in range(50)}

    assert len(ids) == 50


def test_generate_uses_injected_uuid_factory() -> None:
    fixed = uuid.UUID("12345678-1234-5678-1234-567812345678")
    generator = JobReferenceGenerator(uuid_factory=lambda: fixed)

    identity = generator.generate("proj1", "direct-export")

    assert identity.job_id == "direct-export-12345678-1234-5678-1234-567812345678"


@pytest.mark.parametrize(
    ("scope", "prefix"),
    [
        ("proj1", "bad id!"),
        ("proj1", ""),
        ("", "export-job"),
        ("proj1", "dots.are.not.allowed"),
    ],
)
def test_generate_rejects_invalid_input(scope: str, prefix: str) -> None:
    with pytest.raises(InvalidArgumentError):
        JobReferenceGenerator().generate(scope, prefix)


def test_generate_rejects_identifier_over_max_length() -> None:
    generator = JobReferenceGenerator(IdentityRules(max_length=40))

    with pytest.raises(InvalidArgumentError) as exc_info:
        generator.generate("proj1", "a-rather-long-prefix")

    assert "must be less than or equal to 40" in str(exc_info.value)


def test_validate_job_id_checks_pattern_and_length() -> None:
    rules = IdentityRules(max_length=8)

    validate_job_id("abc_123", rules)
    with pytest.raises(InvalidArgumentError):
        validate_job_id("abc 123", rules)
    with pytest.raises(InvalidArgumentError):
        validate_job_id("abcdefghi", rules)
    with pytest.raises(InvalidArgumentError):
        validate_job_id("", rules)
