#!/usr/bin/env python3
"""Check a running ContentDesk server and the configured storage backend."""
import argparse
import asyncio
import os
import sys

import httpx

from contentdesk.config import get_settings
from contentdesk.errors import StorageUnavailable
from contentdesk.storage import create_store


async def check_backend(base_url: str, timeout: float) -> dict:
    results = {}
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout) as client:
        for name, path in (("backend", "/api/test"), ("db-health", "/api/db-health")):
            try:
                response = await client.get(path)
            except httpx.HTTPError as e:
                results[name] = (False, f"{type(e).__name__}: {e}")
                continue
            body = response.json() if response.headers.get("content-type", "").startswith("application/json") else {}
            detail = body.get("message") or body.get("details") or response.reason_phrase
            results[name] = (response.status_code == 200, f"HTTP {response.status_code} {detail}")
    return results


async def check_store() -> tuple[bool, str]:
    settings = get_settings()
    store = create_store(settings)
    try:
        await store.ping()
        return True, f"{settings.storage_backend} backend reachable"
    except StorageUnavailable as e:
        return False, e.details
    finally:
        await store.close()


async def run_checks(base_url: str, timeout: float, skip_store: bool) -> bool:
    results = await check_backend(base_url, timeout)
    if not skip_store:
        results["storage"] = await check_store()

    for name, (ok, detail) in results.items():
        status = "OK" if ok else "FAILED"
        print(f"{name:<10} {status:<7} {detail}")
    return all(ok for ok, _ in results.values())


def main():
    parser = argparse.ArgumentParser(description="Check ContentDesk API and storage connectivity.")
    parser.add_argument(
        "--backend-url",
        default=os.getenv("BACKEND_URL", "http://localhost:5000"),
        help="Base URL of the running server.",
    )
    parser.add_argument("--timeout", type=float, default=5.0, help="Per-request timeout in seconds.")
    parser.add_argument("--skip-store", action="store_true", help="Only check the HTTP endpoints.")
    args = parser.parse_args()

    ok = asyncio.run(run_checks(args.backend_url, args.timeout, args.skip_store))
    if not ok:
        print("One or more checks failed.")
        sys.exit(1)
    print("All checks passed.")


if __name__ == "__main__":
    main()
