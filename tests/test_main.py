"""
Tests for the role table CLI.
"""

import pytest

from crmguard.auth.catalog import Permission, Role
from crmguard.main import action_matrix, main, permission_matrix


class TestMatrices:
    def test_permission_matrix_has_a_row_per_permission(self):
        lines = permission_matrix(list(Role))
        assert len(lines) == len(Permission) + 1
        assert "super-admin" in lines[0]

    def test_action_matrix(self):
        [header, row] = action_matrix([Role.MANAGER], Role.USER)
        cells = row.split()
        assert cells[0] == "manager"
        # create, edit, delete, reset_password, view
        assert cells[1:] == ["-", "yes", "-", "yes", "-"]

    def test_admin_cannot_delete_admin_in_matrix(self):
        [_, row] = action_matrix([Role.ADMIN], Role.ADMIN)
        assert row.split()[1:] == ["yes", "yes", "-", "yes", "yes"]


class TestMain:
    def test_prints_tables(self, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "ROLE PERMISSIONS" in out
        assert "ACTIONS ON A SAME-TENANT USER" in out

    def test_single_role(self, capsys):
        main(["--role", "guest"])
        out = capsys.readouterr().out
        assert "guest" in out
        assert "manager" not in out

    def test_unknown_role(self):
        with pytest.raises(SystemExit):
            main(["--role", "janitor"])
