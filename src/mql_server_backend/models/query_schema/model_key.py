"""
ModelKey immutable value object identifying a semantic model snapshot.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ...exceptions.query_exceptions import QueryValidationError


@dataclass(frozen=True)
class ModelKey:
    """
    Identifies an immutable snapshot of a semantic model.

    Attributes:
        organization: Owning organization
        repo: Repository holding the model definitions
        branch: Branch name
        commit: Commit sha the snapshot was built from
    """

    organization: str
    repo: str
    branch: str
    commit: str

    def __post_init__(self) -> None:
        for field_name in ("organization", "repo", "branch", "commit"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise QueryValidationError(
                    f"Model key field '{field_name}' must be a non-empty string",
                    {"field": field_name}
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelKey":
        try:
            return cls(
                organization=data["organization"],
                repo=data["repo"],
                branch=data["branch"],
                commit=data["commit"],
            )
        except KeyError as e:
            raise QueryValidationError(
                f"Model key is missing field {e.args[0]!r}",
                {"field": e.args[0]}
            ) from e
        except TypeError as e:
            raise QueryValidationError(f"Model key must be a mapping: {e}") from e

    def to_dict(self) -> Dict[str, str]:
        return {
            "organization": self.organization,
            "repo": self.repo,
            "branch": self.branch,
            "commit": self.commit,
        }

    def __str__(self) -> str:
        return f"{self.organization}/{self.repo}@{self.branch}:{self.commit[:12]}"
