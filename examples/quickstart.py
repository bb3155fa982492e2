#!/usr/bin/env python3
"""
CampusHub Quickstart — one account, full session lifecycle.

Register → me → profile patch → logout → old token rejected
→ forgot/reset password → login with the new password.
Run with: python examples/quickstart.py

Requires: pip install -e .
Backend must be running: campushub serve (http://localhost:3001)
"""

import asyncio
import os
import sys
import uuid

from campushub.client import ApiError, AuthSession, CampusHubClient

BASE = os.environ.get("CAMPUSHUB_API_URL", "http://localhost:3001")


async def main():
    run_id = uuid.uuid4().hex[:6]
    email = f"demo-{run_id}@example.com"
    session = AuthSession()

    async with CampusHubClient(BASE, session) as api:
        # ── Health check ──────────────────────────────────────────────
        print("Checking backend health...")
        try:
            health = await api.health()
        except Exception:
            print(f"Backend not reachable at {BASE}")
            sys.exit(1)
        print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
        print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗'}")

        # ── Register (signs in) ───────────────────────────────────────
        print("\n1. Registering...")
        data = await api.register(
            f"Demo {run_id}", email, "demo-password-123", id_number=f"21CS{run_id[:3]}"
        )
        print(f"   {data['message']}: {data['user']['email']}")
        print(f"   Token: {session.token[:24]}...")

        # ── Who am I ──────────────────────────────────────────────────
        print("\n2. Fetching profile...")
        me = await api.me()
        print(f"   {me['name']} roll={me['rollNumber']} branch={me['branch']}")

        # ── Patch a few fields ────────────────────────────────────────
        print("\n3. Updating profile...")
        me = await api.update_profile(semester="5", section="B", skills=["python", "sql"])
        print(f"   semester={me['semester']} section={me['section']} skills={me['skills']}")

        # ── Logout and prove the token is dead ────────────────────────
        print("\n4. Logging out...")
        old_token = session.token
        print(f"   {(await api.logout())['message']}")

        stale = CampusHubClient(BASE, AuthSession(token=old_token))
        try:
            await stale.me()
            print("   ✗ old token still accepted")
        except ApiError as e:
            print(f"   ✓ old token rejected ({e.status_code}: {e.detail})")
        finally:
            await stale.aclose()

        # ── Password reset ────────────────────────────────────────────
        print("\n5. Resetting password...")
        reset = await api.forgot_password(email)
        print(f"   {reset['message']}")
        if "resetToken" not in reset:
            print("   Server does not return reset tokens (production mode). Stopping here.")
            return
        print(f"   {(await api.reset_password(reset['resetToken'], 'new-password-456'))['message']}")

        data = await api.login(email, "new-password-456")
        print(f"   {data['message']} with the new password")

    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
