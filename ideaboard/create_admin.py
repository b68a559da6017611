"""Create an administrator account, or promote an existing one.

Only administrators can grant the admin role through the API, so the first
account has to be created out of band.

Usage:
    python -m ideaboard.create_admin --name "Ada" --alias ada --email ada@example.com \
        --password 'change-me-now' --date-of-birth 1990-01-01 --address "1 rue de Paris"
"""
import argparse
import sys
from datetime import date

from ideaboard import crud
from ideaboard.auth.security import MIN_PASSWORD_LENGTH
from ideaboard.database import SessionLocal, ensure_schema
from ideaboard.models.user import Role
from ideaboard.schemas.user import is_valid_email


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--name", required=True)
    parser.add_argument("--alias", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--date-of-birth", type=date.fromisoformat, default=date(1970, 1, 1))
    parser.add_argument("--address", default="-")
    return parser


def create_or_promote_admin(db, args: argparse.Namespace) -> tuple[int, bool]:
    """Return the admin's id and whether a new account was created."""
    existing = crud.get_user_by_email(db, args.email)
    if existing is not None:
        existing.role = Role.ADMIN
        existing.is_verified = True
        db.commit()
        return existing.id, False

    if crud.alias_taken(db, args.alias):
        raise ValueError(f"Alias already in use: {args.alias}")

    user = crud.create_user(
        db,
        name=args.name,
        alias=args.alias,
        email=args.email,
        date_of_birth=args.date_of_birth,
        address=args.address,
        password=args.password,
        role=Role.ADMIN,
        is_verified=True,
    )
    db.commit()
    return user.id, True


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if not is_valid_email(args.email.strip().lower()):
        print("Invalid email address.", file=sys.stderr)
        sys.exit(1)
    if len(args.password) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.", file=sys.stderr)
        sys.exit(1)

    ensure_schema()
    db = SessionLocal()
    try:
        user_id, created = create_or_promote_admin(db, args)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()

    print(f"{'Created' if created else 'Promoted'} admin user {user_id}")


if __name__ == "__main__":
    main()
