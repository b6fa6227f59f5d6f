import logging
import os
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel
from yaml import safe_load

from atelier.core.config import settings

logger = logging.getLogger(__name__)


class Policy(BaseModel):
    """One derived permission.

    Granted when the user holds any of ``roles`` or when their effective
    hierarchy level is at most ``max_level``.
    """
    key: str
    roles: List[str] = []
    max_level: Optional[int] = None

    def allows(self, role_slugs: Iterable[str], hierarchy_level: int) -> bool:
        if self.max_level is not None and hierarchy_level <= self.max_level:
            return True
        slugs = set(role_slugs)
        return any(role in slugs for role in self.roles)


# Load policies from YAML file
def load_policies() -> Dict:
    possible_paths = [
        settings.POLICIES_PATH,
        "policies.yaml",  # Current directory
        "/app/policies.yaml",  # Docker app directory
        os.path.join(os.path.dirname(__file__), "../../../policies.yaml"),  # Relative to this file
    ]

    for path in possible_paths:
        if path and os.path.exists(path):
            logger.info(f"Loading policies from: {path}")
            with open(path, "r") as f:
                return safe_load(f) or {}

    logger.error(f"policies.yaml not found in any of these paths: {possible_paths}")
    return {}


@lru_cache(maxsize=1)
def get_policies() -> tuple[Policy, ...]:
    return tuple(Policy(**policy) for policy in load_policies().get("policies", []))


def list_permission_keys() -> list[str]:
    return [policy.key for policy in get_policies()]


def evaluate(role_slugs: Iterable[str], hierarchy_level: int) -> dict[str, bool]:
    """Evaluate every derived permission for a set of role slugs and a level."""
    slugs = set(role_slugs)
    return {policy.key: policy.allows(slugs, hierarchy_level) for policy in get_policies()}
