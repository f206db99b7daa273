#!/usr/bin/env python3
"""
Gatekeeper -- user registration, login, and signed session tokens.

Usage:
  python main.py register --user-id u1 --name Ada --email ada@example.com
  python main.py login --email ada@example.com
  python main.py verify <token>
  python main.py serve --port 8000

Passwords are prompted for (no echo) unless --password is given.

Environment variables (see core/config.py):
  SECRET_KEY            Signing key, at least 32 characters. Required unless DEBUG=true.
  DEBUG                 true = development mode (random key, low bcrypt cost allowed).
  DATABASE_URL          SQLAlchemy URL of the identity database.
  TOKEN_EXPIRE_SECONDS  Session token lifetime (default 3600).
  BCRYPT_ROUNDS         bcrypt cost factor (default 12).
"""

import argparse
import getpass
import json
import sys
from dataclasses import asdict
from typing import Optional

from auth.errors import AuthError
from auth.service import AuthService
from auth.store import IdentityStore
from core.config import get_settings


def _password(given: Optional[str], prompt: str = "Password: ") -> str:
    return given if given is not None else getpass.getpass(prompt)


def _build_service() -> AuthService:
    settings = get_settings()
    return AuthService(IdentityStore(settings.database_url), settings.auth_config())


def _cmd_register(service: AuthService, args: argparse.Namespace) -> None:
    identity = service.register(args.user_id, args.name, args.email, _password(args.password))
    print(json.dumps(asdict(identity), indent=2))


def _cmd_login(service: AuthService, args: argparse.Namespace) -> None:
    token = service.login(args.email, _password(args.password))
    print(json.dumps({"token": token}, indent=2))


def _cmd_verify(service: AuthService, args: argparse.Namespace) -> None:
    claims = service.verify_token(args.token)
    print(
        json.dumps(
            {
                "user_id": claims.user_id,
                "name": claims.name,
                "email": claims.email,
                "issued_at": claims.issued_at.isoformat(),
                "expires_at": claims.expires_at.isoformat(),
            },
            indent=2,
        )
    )


def _cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description="Register users, log in, and verify session tokens.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  DEBUG=true python main.py register --user-id u1 --name Ada --email ada@example.com
  DEBUG=true python main.py login --email ada@example.com
  python main.py verify eyJhbGciOi...
  python main.py serve --reload
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    reg = sub.add_parser("register", help="Create a new identity")
    reg.add_argument("--user-id", required=True, help="Caller-chosen unique user id")
    reg.add_argument("--name", required=True, help="Display name")
    reg.add_argument("--email", required=True, help="Login email (must be unique)")
    reg.add_argument("--password", help="Password (prompted for when omitted)")

    login = sub.add_parser("login", help="Verify credentials and print a session token")
    login.add_argument("--email", required=True)
    login.add_argument("--password", help="Password (prompted for when omitted)")

    verify = sub.add_parser("verify", help="Verify a session token and print its claims")
    verify.add_argument("token")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        _cmd_serve(args)
        return 0

    handlers = {"register": _cmd_register, "login": _cmd_login, "verify": _cmd_verify}
    service: Optional[AuthService] = None
    try:
        service = _build_service()
        handlers[args.command](service, args)
    except AuthError as exc:
        print(f"error: {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        if service is not None:
            service.store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
