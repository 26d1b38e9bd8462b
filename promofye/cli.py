"""
Operator commands for a Promofye deployment.

Examples:
  promofye-admin init-db                       # create tables and seed plans
  promofye-admin create-admin a@b.co secret1   # new admin account
  promofye-admin promote a@b.co                # make an existing user admin
  promofye-admin set-plan a@b.co pro           # move a user to another plan
"""
import argparse
import sys

from dotenv import load_dotenv

from promofye.core.errors import AppError


def _init_db(args) -> int:
    from promofye.core.database import create_all_tables
    from promofye.features.plans.service import seed_plans

    create_all_tables()
    price_ids = {plan: price for plan, price in (("pro", args.pro_price), ("business", args.business_price)) if price}
    seed_plans(price_ids)
    print("[ok] Tables created and plans seeded.")
    return 0


def _create_admin(args) -> int:
    from promofye.features.users.service import sign_up

    profile = sign_up(args.email, args.password, args.full_name, is_admin=True)
    print(f"[ok] Admin {profile.email} created ({profile.id}).")
    return 0


def _promote(args) -> int:
    from promofye.features.users.service import get_profile_by_email, set_admin

    profile = get_profile_by_email(args.email)
    if not profile:
        print(f"[error] No user with email {args.email}", file=sys.stderr)
        return 1
    set_admin(profile.id, not args.revoke)
    print(f"[ok] {profile.email} is_admin={not args.revoke}")
    return 0


def _set_plan(args) -> int:
    from promofye.features.plans.service import assign_plan
    from promofye.features.users.service import get_profile_by_email

    profile = get_profile_by_email(args.email)
    if not profile:
        print(f"[error] No user with email {args.email}", file=sys.stderr)
        return 1
    subscription = assign_plan(profile.id, args.plan_id)
    print(f"[ok] {profile.email} is now on {subscription.plan_id} until {subscription.current_period_end.isoformat()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promofye-admin",
        description="Promofye operator commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    commands = parser.add_subparsers(dest="command")

    init_db = commands.add_parser("init-db", help="Create tables and seed default plans")
    init_db.add_argument("--pro-price", help="Stripe price ID for the Pro plan")
    init_db.add_argument("--business-price", help="Stripe price ID for the Business plan")
    init_db.set_defaults(handler=_init_db)

    create_admin = commands.add_parser("create-admin", help="Create an admin account")
    create_admin.add_argument("email")
    create_admin.add_argument("password")
    create_admin.add_argument("--full-name", default=None)
    create_admin.set_defaults(handler=_create_admin)

    promote = commands.add_parser("promote", help="Grant (or revoke) admin access")
    promote.add_argument("email")
    promote.add_argument("--revoke", action="store_true", help="Remove admin access instead")
    promote.set_defaults(handler=_promote)

    set_plan = commands.add_parser("set-plan", help="Assign a plan to a user")
    set_plan.add_argument("email")
    set_plan.add_argument("plan_id")
    set_plan.set_defaults(handler=_set_plan)

    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 2
    try:
        return args.handler(args)
    except AppError as e:
        print(f"[error] {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
