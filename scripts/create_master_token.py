#!/usr/bin/env python3
"""
Cria um token master (uso ilimitado, conferido só por existência).

Uso:
    python scripts/create_master_token.py            # gera um token
    python scripts/create_master_token.py <TOKEN>    # registra um token específico
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.db.session import SessionLocal
from app.models.invite_token import MasterInviteToken
from app.services.invite_tokens import generate_token, has_injection_signature
from app.services.token_store import InviteTokenStore


async def main(argv: list[str]) -> int:
    token = argv[0].strip().upper() if argv else generate_token()

    if len(token) != settings.invite_token_length or has_injection_signature(token):
        print(f"❌ Token deve ter exatamente {settings.invite_token_length} caracteres válidos")
        return 1

    async with SessionLocal() as db:
        store = InviteTokenStore(db)
        if await store.find_master(token) or await store.find_by_token(token):
            print("❌ Token já existe")
            return 1
        await store.insert(MasterInviteToken(token=token))
        await store.commit()

    print("✅ Token master criado:")
    print(f"   {token}")
    print("⚠️  Este token não tem limite de usos. Guarde-o em local seguro.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
