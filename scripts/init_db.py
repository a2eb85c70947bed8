#!/usr/bin/env python3
"""Initialize database tables and optionally seed a demo account.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --seed-phone +15551230000 --transfer-to +15559870000
"""

import argparse
import asyncio

from voxdesk.db.repositories.accounts import AsyncCallerAccountRepository
from voxdesk.db.session import close_db, get_session_context, init_db


async def main(args: argparse.Namespace) -> None:
    """Create all tables, then add the demo account if asked."""
    await init_db()
    print("Database tables created successfully.")

    if args.seed_phone:
        async with get_session_context() as session:
            repo = AsyncCallerAccountRepository(session)
            existing = await repo.get_by_phone_number(args.seed_phone)
            if existing:
                print(f"Account {existing.id} already answers {args.seed_phone}.")
            else:
                account = await repo.create(
                    id=args.account_id,
                    name=args.name,
                    phone_number=args.seed_phone,
                    transfer_destination=args.transfer_to,
                )
                print(f"Created account {account.id} for {args.seed_phone}.")

    await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the Voxdesk database")
    parser.add_argument("--seed-phone", default=None, help="E.164 number to answer")
    parser.add_argument("--account-id", default="demo_office")
    parser.add_argument("--name", default="Demo Office")
    parser.add_argument("--transfer-to", default=None, help="E.164 transfer destination")
    asyncio.run(main(parser.parse_args()))
