#!/usr/bin/env python3
"""
Multi-device sessions — every login is its own session.

Logs the same user in from three "devices" (three AuthSessions), revokes
one, then signs out everywhere.
Run with: python examples/multi_device.py
"""

import asyncio
import os
import uuid

from campushub.client import ApiError, AuthSession, CampusHubClient

BASE = os.environ.get("CAMPUSHUB_API_URL", "http://localhost:3001")
PASSWORD = "demo-password-123"


async def whoami(api: CampusHubClient) -> str:
    try:
        return f"✓ {(await api.me())['email']}"
    except ApiError as e:
        return f"✗ {e.status_code} {e.detail}"


async def main():
    email = f"demo-{uuid.uuid4().hex[:6]}@example.com"
    phone, laptop, tablet = (
        CampusHubClient(BASE, AuthSession()) for _ in range(3)
    )
    devices = {"phone": phone, "laptop": laptop, "tablet": tablet}

    try:
        await phone.register("Demo", email, PASSWORD)
        await laptop.login(email, PASSWORD)
        await tablet.login(email, PASSWORD)

        print("Signed in on three devices:")
        for name, api in devices.items():
            print(f"  {name:7} {await whoami(api)}")

        print("\nLaptop logs out:")
        token = laptop.session.token
        await laptop.logout()
        laptop.session.token = token  # replay the revoked token
        for name, api in devices.items():
            print(f"  {name:7} {await whoami(api)}")

        print("\nPhone signs out everywhere:")
        print(f"  {(await phone.logout_all())['message']}")
        print(f"  tablet  {await whoami(tablet)}")
    finally:
        for api in devices.values():
            await api.aclose()


if __name__ == "__main__":
    asyncio.run(main())
