from __future__ import annotations

import re
import uuid
from typing import Callable

from jobkeeper.errors import InvalidArgumentError
from jobkeeper.models import JobIdentity
from jobkeeper.settings import IdentityRules


def validate_job_id(job_id: str, rules: IdentityRules) -> None:
    if not job_id:
        raise InvalidArgumentError("job_id must not be empty")
    if not re.fullmatch(rules.pattern, job_id):
        raise InvalidArgumentError(f"job_id '{job_id}' must match pattern '{rules.pattern}'")
    if len(job_id) > rules.max_length:
        raise InvalidArgumentError(
            f"job_id '{job_id}' has length {len(job_id)}; must be less than or equal to "
            f"{rules.max_length}"
        )


class JobReferenceGenerator:
    """Creates job identities from a readable prefix plus a random UUID."""

    def __init__(
        self,
        rules: IdentityRules | None = None,
        *,
        uuid_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        self.rules = rules or IdentityRules()
        self.uuid_factory = uuid_factory

    def generate(self, scope: str, prefix: str) -> JobIdentity:
        if not scope:
            raise InvalidArgumentError("scope must not be empty")
        if not prefix:
            raise InvalidArgumentError("prefix must not be empty")
        if not re.fullmatch(self.rules.pattern, prefix):
            raise InvalidArgumentError(
                f"prefix '{prefix}' must match pattern '{self.rules.pattern}'"
            )

        job_id = f"{prefix}-{self.uuid_factory()}"
        validate_job_id(job_id, self.rules)
        return JobIdentity(scope=scope, job_id=job_id)
