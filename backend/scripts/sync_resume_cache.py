"""
Push locally cached resume details to the remote tiers.

Saves that only reached the local cache stay there until this runs.
Run this script from the backend directory with:
    python -m scripts.sync_resume_cache <user_id> [<user_id> ...]
    python -m scripts.sync_resume_cache --all
"""
import asyncio
import os
import sys
from dotenv import load_dotenv

load_dotenv()

from labportal.services.local_cache import cached_user_ids
from labportal.services.profile_store import ProfileStore, UserSession


async def sync_users(user_ids: list) -> int:
    # Bearer token for the REST fallback tier; the primary store needs none
    token = os.getenv("RESUME_API_TOKEN")
    failures = 0

    for user_id in user_ids:
        store = ProfileStore(UserSession(user_id=user_id, id_token=token))
        if await store.sync():
            print(f"✅ Synced {user_id}")
        else:
            print(f"❌ Nothing synced for {user_id}")
            failures += 1

    print(f"\n📊 {len(user_ids) - failures}/{len(user_ids)} users synced")
    return failures


if __name__ == "__main__":
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        sys.exit(2)

    if args == ["--all"]:
        args = cached_user_ids()

    sys.exit(1 if asyncio.run(sync_users(args)) else 0)
