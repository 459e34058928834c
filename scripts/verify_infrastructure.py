#!/usr/bin/env python3
"""
Infrastructure verification script for Laudos.

Checks that the database, the document bucket and the optional remote
endpoints configured in the environment are reachable.
"""

import asyncio
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import httpx
from sqlalchemy import text

# Add backend/src to path for imports
BACKEND_SRC = Path(__file__).resolve().parent.parent / "backend" / "src"
sys.path.insert(0, str(BACKEND_SRC))

from laudos.config import get_settings  # noqa: E402
from laudos.db import close_all_connections, get_db_session, ping_database  # noqa: E402
from laudos.storage import StorageClient  # noqa: E402


class ServiceStatus(Enum):
    OK = "OK"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"


@dataclass
class ServiceCheck:
    name: str
    status: ServiceStatus
    message: str


async def check_postgres() -> ServiceCheck:
    """Check PostgreSQL connectivity and that the schema is migrated."""
    try:
        version = await ping_database()
        async with get_db_session() as session:
            await session.execute(text("SELECT 1 FROM processes LIMIT 1"))
        return ServiceCheck("PostgreSQL", ServiceStatus.OK, f"Connected - {version[:50]}...")
    except Exception as e:
        return ServiceCheck("PostgreSQL", ServiceStatus.ERROR, str(e))


async def check_storage() -> ServiceCheck:
    """Check that the document bucket exists."""
    settings = get_settings()
    try:
        storage = StorageClient()
        await asyncio.to_thread(storage._client.head_bucket, Bucket=settings.s3_bucket)
        return ServiceCheck("Storage", ServiceStatus.OK, f"Bucket {settings.s3_bucket} available")
    except Exception as e:
        return ServiceCheck("Storage", ServiceStatus.ERROR, str(e))


async def check_endpoint(name: str, url: str) -> ServiceCheck:
    """Check that an optional HTTP endpoint answers at all."""
    if not url:
        return ServiceCheck(name, ServiceStatus.SKIPPED, "Not configured (local fallback in use)")
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.request("OPTIONS", url)
        return ServiceCheck(name, ServiceStatus.OK, f"Reachable - HTTP {response.status_code}")
    except httpx.HTTPError as e:
        return ServiceCheck(name, ServiceStatus.ERROR, str(e) or type(e).__name__)


def print_result(check: ServiceCheck) -> None:
    """Print a service check result."""
    # Use ASCII-safe symbols for Windows compatibility
    status_symbols = {
        ServiceStatus.OK: "\033[92m[OK]\033[0m",
        ServiceStatus.ERROR: "\033[91m[FAIL]\033[0m",
        ServiceStatus.SKIPPED: "\033[93m[-]\033[0m",
    }
    symbol = status_symbols[check.status]
    print(f"  {symbol} {check.name}: {check.message}")


async def main() -> int:
    """Run all infrastructure checks."""
    settings = get_settings()

    print("\n" + "=" * 60)
    print("Laudos Infrastructure Verification")
    print("=" * 60 + "\n")

    print("Checking services...\n")

    checks = await asyncio.gather(
        check_postgres(),
        check_storage(),
        check_endpoint("Report function", settings.report_function_url),
        check_endpoint("LLM extraction", settings.llm_extract_url),
        check_endpoint("OCR", settings.ocr_url),
    )
    await close_all_connections()

    for check in checks:
        print_result(check)

    print()

    error_count = sum(1 for c in checks if c.status == ServiceStatus.ERROR)
    if error_count > 0:
        print(f"\033[91mResult: {error_count} service(s) not available\033[0m\n")
        return 1

    ok_count = sum(1 for c in checks if c.status == ServiceStatus.OK)
    print(f"\033[92mResult: {ok_count} service(s) operational\033[0m\n")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
