#!/usr/bin/env python3
"""
Script para gerar secrets seguros para o Ingresso.
Use antes de fazer deploy em produção.
"""

import secrets


def generate_session_secret() -> str:
    """Gera um secret seguro para sessões."""
    return secrets.token_urlsafe(32)


def main():
    print("=" * 60)
    print("INGRESSO - Gerador de Secrets")
    print("=" * 60)
    print()

    print("📝 Copie esta variável para seu .env:\n")

    print("# Session Secret (para cookies e sessões)")
    print(f"INGRESSO_SESSION_SECRET={generate_session_secret()}")
    print()

    print("=" * 60)
    print("⚠️  IMPORTANTE:")
    print("- NÃO commite no Git")
    print("- Use secrets diferentes para dev/staging/prod")
    print("- Tokens master são criados com scripts/create_master_token.py")
    print("=" * 60)


if __name__ == "__main__":
    main()
