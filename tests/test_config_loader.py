"""
Tests for loading permission grants from YAML.
"""

import pytest

from crmguard.config_loader import GrantLoader, GrantLoaderError


GRANTS = """
grants:
  - actor_id: user_42
    tenant_id: tenant-1
    permissions:
      - user:create
      - user:delete
  - actor_id: root
    permissions:
      - audit:read
"""


class TestGrantLoader:
    @pytest.mark.asyncio
    async def test_load_dir(self, store, tmp_path):
        (tmp_path / "grants.yaml").write_text(GRANTS)
        (tmp_path / "more.yml").write_text("grants:\n  - actor_id: user_42\n    tenant_id: tenant-1\n    permissions: ['user:list']\n")
        (tmp_path / "notes.txt").write_text("ignored")
        
        count = await GrantLoader(store).load_dir(tmp_path)
        
        assert count == 3
        assert await store.fetch_permissions("user_42", "tenant-1") == {
            "user:create",
            "user:delete",
            "user:list",
        }
        assert await store.fetch_permissions("root", None) == {"audit:read"}

    @pytest.mark.asyncio
    async def test_missing_dir(self, store, tmp_path):
        assert await GrantLoader(store).load_dir(tmp_path / "nope") == 0

    @pytest.mark.asyncio
    async def test_empty_file(self, store, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        
        assert await GrantLoader(store).load_file(path) == 0

    @pytest.mark.asyncio
    async def test_unknown_permission_is_rejected(self, store, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("grants:\n  - actor_id: u\n    permissions: ['user:teleport']\n")
        
        with pytest.raises(GrantLoaderError, match="user:teleport"):
            await GrantLoader(store).load_file(path)

    @pytest.mark.asyncio
    async def test_umbrella_grants_are_accepted(self, store, tmp_path):
        path = tmp_path / "umbrella.yaml"
        path.write_text("grants:\n  - actor_id: u\n    tenant_id: t\n    permissions: ['customer:manage', '*']\n")
        
        assert await GrantLoader(store).load_file(path) == 1
        assert await store.fetch_permissions("u", "t") == {"customer:manage", "*"}

    @pytest.mark.asyncio
    async def test_umbrella_on_unknown_resource_is_rejected(self, store, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("grants:\n  - actor_id: u\n    permissions: ['widget:manage']\n")
        
        with pytest.raises(GrantLoaderError, match="widget:manage"):
            await GrantLoader(store).load_file(path)

    @pytest.mark.asyncio
    async def test_grant_needs_actor(self, store, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("grants:\n  - permissions: ['user:list']\n")
        
        with pytest.raises(GrantLoaderError, match="actor_id"):
            await GrantLoader(store).load_file(path)

    @pytest.mark.asyncio
    async def test_grants_must_be_a_list(self, store, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("grants:\n  actor_id: u\n")
        
        with pytest.raises(GrantLoaderError):
            await GrantLoader(store).load_file(path)
