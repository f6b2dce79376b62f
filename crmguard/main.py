"""
crmguard - Main entry point.

Prints the static authorization tables so they can be reviewed without
reading the code:

    python -m crmguard.main
    python -m crmguard.main --role manager
    python -m crmguard.main --target-role admin
"""

from __future__ import annotations

import argparse

from crmguard.auth.authorizer import Action, can_perform_action
from crmguard.auth.catalog import Permission, Role, permissions_for_role

DEMO_TENANT = "tenant-1"


def _tenant_for(role: Role) -> str | None:
    return None if role is Role.SUPER_ADMIN else DEMO_TENANT


def permission_matrix(roles: list[Role]) -> list[str]:
    """One line per permission, one column per role."""
    width = max(len(p.value) for p in Permission)
    lines = [" " * width + "  " + "  ".join(f"{r.value:>11}" for r in roles)]
    for permission in Permission:
        cells = [
            f"{'yes' if permission in permissions_for_role(role) else '-':>11}"
            for role in roles
        ]
        lines.append(f"{permission.value:<{width}}  " + "  ".join(cells))
    return lines


def action_matrix(roles: list[Role], target_role: Role) -> list[str]:
    """One line per actor role; the target is in the actor's tenant."""
    lines = [" " * 11 + "  " + "  ".join(f"{a.value:>14}" for a in Action)]
    for role in roles:
        cells = [
            f"{'yes' if can_perform_action(role, _tenant_for(role), target_role, DEMO_TENANT, action) else '-':>14}"
            for action in Action
        ]
        lines.append(f"{role.value:<11}  " + "  ".join(cells))
    return lines


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Show the crmguard role tables")
    parser.add_argument("--role", choices=[r.value for r in Role], help="Only show this role")
    parser.add_argument(
        "--target-role",
        choices=[r.value for r in Role],
        default=Role.USER.value,
        help="Role of the target user in the action table (default: user)",
    )
    args = parser.parse_args(argv)

    roles = [Role(args.role)] if args.role else list(Role)
    target_role = Role(args.target_role)

    print("=" * 60)
    print("ROLE PERMISSIONS")
    print("=" * 60)
    for line in permission_matrix(roles):
        print(line)
    print()

    print("=" * 60)
    print(f"ACTIONS ON A SAME-TENANT {target_role.value.upper()}")
    print("=" * 60)
    for line in action_matrix(roles, target_role):
        print(line)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
