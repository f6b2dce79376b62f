"""
Permission grant loader.

Seeds the dynamic permission store from YAML files, so a development or
test deployment can grant extra permissions without touching the database.

File format:

    grants:
      - actor_id: user_42
        tenant_id: tenant-1
        permissions:
          - user:create
          - user:delete
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from crmguard.auth.catalog import expand_permission
from crmguard.storage.permissions import MetadataPermissionStore

logger = logging.getLogger(__name__)


class GrantLoaderError(Exception):
    """Raised when a grant file is malformed."""
    pass


class GrantLoader:
    """Loads grant files into a MetadataPermissionStore."""
    
    def __init__(self, store: MetadataPermissionStore):
        self.store = store
    
    async def load_dir(self, grants_dir: Path | str) -> int:
        """
        Load every *.yaml / *.yml file in a directory.
        
        Returns:
            Number of grants loaded
        """
        grants_dir = Path(grants_dir)
        if not grants_dir.exists():
            logger.warning(f"Grants directory not found: {grants_dir}")
            return 0
        
        count = 0
        for path in sorted([*grants_dir.glob("*.yaml"), *grants_dir.glob("*.yml")]):
            count += await self.load_file(path)
        return count
    
    async def load_file(self, path: Path | str) -> int:
        """Load one grant file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        
        grants = data.get("grants", [])
        if not isinstance(grants, list):
            raise GrantLoaderError(f"{path}: 'grants' must be a list")
        
        for i, grant in enumerate(grants):
            await self._load_grant(path, i, grant)
        
        logger.info(f"Loaded {len(grants)} grants from {path.name}")
        return len(grants)
    
    async def _load_grant(self, path: Path, index: int, grant: dict[str, Any]) -> None:
        if not isinstance(grant, dict) or not grant.get("actor_id"):
            raise GrantLoaderError(f"{path}: grant #{index} needs an actor_id")
        
        permissions = [str(p) for p in grant.get("permissions") or []]
        unknown = [p for p in permissions if expand_permission(p) is None]
        if unknown:
            raise GrantLoaderError(f"{path}: grant #{index} has unknown permissions {unknown}")
        
        await self.store.grant(
            actor_id=str(grant["actor_id"]),
            tenant_id=grant.get("tenant_id"),
            permissions=permissions,
        )
