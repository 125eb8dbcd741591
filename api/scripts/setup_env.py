"""Generate a local .env for BeardedVibes from .env.example.

SQLite is the default database; ``--postgres`` points DATABASE_URL at a
Postgres server instead. Secrets still set to CHANGE_ME (or empty) are
replaced with fresh random values, and the integration settings that are
left blank are listed so they can be filled in by hand.
"""

from __future__ import annotations

import argparse
import os
import secrets
import sys
from pathlib import Path

PLACEHOLDER = "CHANGE_ME"
LOCAL_HOSTS = {"localhost", "127.0.0.1", "db"}
GENERATED_SECRETS = ("JWT_SECRET", "SETUP_SECRET", "BOT_SERVICE_TOKEN", "POSTGRES_PASSWORD")

# Settings that only the operator can supply, grouped by what they enable
INTEGRATIONS = {
    "Discord sign-in": ("DISCORD_CLIENT_ID", "DISCORD_CLIENT_SECRET"),
    "Google sign-in": ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"),
    "Cloudinary storage": ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"),
    "Discord bot": ("BOT_TOKEN", "TARGET_CHANNEL_ID"),
}


def read_template(lines: list[str]) -> dict[str, str]:
    """KEY=value pairs from an env file, ignoring comments."""
    values: dict[str, str] = {}
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        values[key.strip()] = value.strip()
    return values


def needs_secret(value: str | None) -> bool:
    return not value or PLACEHOLDER in value


def build_values(
    template: dict[str, str],
    *,
    base_url: str,
    postgres_host: str | None = None,
    postgres_port: str = "5432",
    rotate: bool = False,
) -> dict[str, str]:
    """Values to write over the template."""
    values: dict[str, str] = {}
    for key in GENERATED_SECRETS:
        if key in template and (rotate or needs_secret(template[key])):
            values[key] = secrets.token_urlsafe(32)

    base_url = base_url.rstrip("/")
    values["FRONTEND_BASE_URL"] = base_url
    values["CORS_ORIGINS"] = base_url
    values["BACKEND_UPLOAD_URL"] = f"{base_url}/api/upload"

    if postgres_host:
        user = template.get("POSTGRES_USER") or "postgres"
        database = template.get("POSTGRES_DB") or "beardedvibes"
        password = values.get("POSTGRES_PASSWORD", template.get("POSTGRES_PASSWORD", ""))
        values["DATABASE_URL"] = f"postgresql://{user}:{password}@{postgres_host}:{postgres_port}/{database}"
        values["DATABASE_SSL"] = "false" if postgres_host in LOCAL_HOSTS else "true"
    else:
        values["DATABASE_URL"] = ""

    return {key: value for key, value in values.items() if key in template}


def render(lines: list[str], values: dict[str, str]) -> str:
    rendered = []
    for line in lines:
        key = line.partition("=")[0].strip()
        if "=" in line and not line.lstrip().startswith("#") and key in values:
            rendered.append(f"{key}={values[key]}\n")
        else:
            rendered.append(line)
    return "".join(rendered)


def missing_integrations(merged: dict[str, str]) -> list[str]:
    """Human-readable list of integrations whose settings are still blank."""
    missing = []
    for name, keys in INTEGRATIONS.items():
        blank = [key for key in keys if not merged.get(key)]
        if blank:
            missing.append(f"{name}: {', '.join(blank)}")
    return missing


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a BeardedVibes .env from .env.example")
    parser.add_argument("--path", default=None, help="Output path (default: repo root/.env)")
    parser.add_argument(
        "--base-url",
        default="http://localhost:3000",
        help="Public URL of the site; OAuth callbacks and the bot upload URL derive from it",
    )
    parser.add_argument(
        "--postgres",
        metavar="HOST",
        default=None,
        help="Use Postgres on HOST instead of the SQLite file",
    )
    parser.add_argument("--postgres-port", default="5432")
    parser.add_argument("--rotate", action="store_true", help="Regenerate secrets that are already set")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing .env")
    args = parser.parse_args(argv)

    repo_root = Path(__file__).resolve().parents[2]
    template_path = repo_root / ".env.example"
    if not template_path.exists():
        print(f"Template not found: {template_path}", file=sys.stderr)
        return 1

    env_path = Path(args.path) if args.path else repo_root / ".env"
    if env_path.exists() and not args.force:
        print(f"{env_path} already exists. Use --force to overwrite.", file=sys.stderr)
        return 1

    lines = template_path.read_text(encoding="utf-8").splitlines(keepends=True)
    template = read_template(lines)
    values = build_values(
        template,
        base_url=args.base_url,
        postgres_host=args.postgres,
        postgres_port=args.postgres_port,
        rotate=args.rotate,
    )
    env_path.write_text(render(lines, values), encoding="utf-8")
    if os.name != "nt":
        env_path.chmod(0o600)

    print(f"Wrote {env_path} ({'postgres' if args.postgres else 'sqlite'})")
    for line in missing_integrations({**template, **values}):
        print(f"  not configured - {line}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
