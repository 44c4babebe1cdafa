import argparse
import logging
import sys
from datetime import timedelta
from uuid import UUID

from src.adapters.dev_email import build_invite_link
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.app_shell.config import Settings, configure_logging
from src.app_shell.context import ServiceContext
from src.domain.entities import User
from src.domain.errors import DomainError
from src.rules.loader import load_rules

logger = logging.getLogger("cli")

SAMPLE_USERS = (
    ("alice@example.com", "Alice Johnson", "555-0101", "Downtown"),
    ("bob@example.com", "Bob Smith", "555-0102", "Downtown"),
)
SAMPLE_GROUP = "Downtown Neighbors"


def get_context(settings: Settings) -> ServiceContext:
    rules = load_rules(settings.rules_path)
    return ServiceContext.create(settings.db_path, rules, email_mode=settings.email_mode)


def require_user(ctx: ServiceContext, email: str) -> User:
    user = ctx.store.get_user_by_email(email)
    if not user:
        logger.error("User %s not found.", email)
        sys.exit(1)
    return user


def handle_migrate(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    migrator = SQLiteMigrator(str(settings.db_path), str(settings.migrations_dir))
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s) to {settings.db_path}.")


def handle_seed(ctx: ServiceContext) -> None:
    if ctx.store.get_user_by_email(SAMPLE_USERS[0][0]):
        print("Sample data already present.")
        return

    alice, bob = (
        ctx.store.save_user(User(email=email, name=name, phone=phone, general_area=area))
        for email, name, phone, area in SAMPLE_USERS
    )
    group = ctx.group_service.create_group(SAMPLE_GROUP, alice.id)
    invite = ctx.invite_service.issue_invite(group.id, bob.email, alice.id)
    ctx.invite_service.accept_invite(invite.token, bob.id)
    ctx.request_service.create_request(
        group.id,
        alice.id,
        item_description="Milk and a loaf of bread",
        needed_by=ctx.clock.now_utc() + timedelta(days=1),
        store_preference="Corner grocery",
    )

    print(f"Seeded users {alice.email}, {bob.email}")
    print(f"Group: {group.name} ({group.id})")


def handle_invite(ctx: ServiceContext, args: argparse.Namespace) -> None:
    try:
        group_id = UUID(args.group_id)
    except ValueError:
        logger.error("Invalid group id: %s", args.group_id)
        sys.exit(1)

    inviter = require_user(ctx, args.inviter_email)
    try:
        invite = ctx.invite_service.issue_invite(group_id, args.email, inviter.id)
    except DomainError as e:
        logger.error("Invite failed (%s): %s", e.kind.value, e.message)
        sys.exit(1)

    print(f"Invite created for {invite.email}, expires {invite.expires_at.isoformat()}.")
    print(f"Token: {invite.token}")
    print(f"Link: {build_invite_link(ctx.rules.email, invite.token)}")


def handle_purge(ctx: ServiceContext) -> None:
    count = ctx.invite_service.purge_expired()
    print(f"Purged {count} expired invite(s).")


def handle_usage(ctx: ServiceContext, args: argparse.Namespace) -> None:
    user = require_user(ctx, args.email)
    summary = ctx.limits_service.usage_summary(user.id)
    limits, usage = summary.limits, summary.usage

    print(f"Usage for {user.email}:")
    print(f"  Open requests:   {usage.open_requests}/{limits.max_open_requests}")
    print(f"  Groups created:  {usage.groups_created}/{limits.max_groups_created}")
    print(f"  Groups joined:   {usage.groups_joined}/{limits.max_groups_joined}")
    print(f"  Open invites:    {usage.open_invites}/{limits.max_open_invites}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Help Your Neighbor CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply pending database migrations")
    subparsers.add_parser("seed", help="Create sample users, a group and a request")

    invite_parser = subparsers.add_parser("invite", help="Invite an email address to a group")
    invite_parser.add_argument("group_id", help="Group id")
    invite_parser.add_argument("email", help="Recipient email")
    invite_parser.add_argument(
        "--inviter-email", required=True, help="Email of the group owner sending the invite"
    )

    subparsers.add_parser("purge-invites", help="Delete expired, unused invites")

    usage_parser = subparsers.add_parser("usage", help="Show a user's limits and usage")
    usage_parser.add_argument("--email", required=True, help="User email")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    settings = Settings()
    configure_logging(settings.log_level)
    try:
        settings.validate()
    except (ValueError, FileNotFoundError) as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    if args.command == "migrate":
        handle_migrate(settings)
        return

    ctx = get_context(settings)
    try:
        if args.command == "seed":
            handle_seed(ctx)
        elif args.command == "invite":
            handle_invite(ctx, args)
        elif args.command == "purge-invites":
            handle_purge(ctx)
        elif args.command == "usage":
            handle_usage(ctx, args)
    finally:
        ctx.close()


if __name__ == "__main__":
    main()
