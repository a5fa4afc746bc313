#!/usr/bin/env python3
"""
Script para criar ou promover administrador do console Ingresso.

O cadastro público exige convite; este script é o caminho para o primeiro admin.

Uso:
    python scripts/create_superuser.py
"""

import asyncio
import sys
from pathlib import Path

# Adiciona o diretório raiz ao path para importar módulos da app
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.security import hash_password
from app.db.session import SessionLocal
from app.models.user import AppUser
from app.services.audit import AuditActor, AuditEmitter


async def main():
    print("=" * 60)
    print("INGRESSO - Criar/Promover Administrador")
    print("=" * 60)
    print()

    async with SessionLocal() as db:
        result = await db.execute(select(AppUser).order_by(AppUser.created_at))
        users = result.scalars().all()

        print(f"📊 Total de usuários no sistema: {len(users)}")
        print()

        if not users:
            print("ℹ️  Nenhum usuário no sistema. Criando primeiro administrador...")
            print()
            await create_admin(db)
            return

        print("Escolha uma opção:")
        print("  [1] Criar novo administrador")
        print("  [2] Promover usuário existente a admin")
        print()
        choice = input("Opção: ").strip()

        if choice == "1":
            await create_admin(db)
        elif choice == "2":
            await promote_existing_user(db, users)
        else:
            print("❌ Opção inválida")


async def create_admin(db):
    email = input("Email: ").strip().lower()
    if not email:
        print("❌ Email é obrigatório")
        return

    existing = (await db.execute(select(AppUser).where(AppUser.email == email))).scalar_one_or_none()
    if existing:
        print(f"❌ Já existe um usuário com o email {email}")
        return

    password = input("Senha (mín. 8 caracteres): ").strip()
    if len(password) < 8:
        print("❌ Senha deve ter no mínimo 8 caracteres")
        return

    name = input("Nome (opcional): ").strip() or None

    user = AppUser(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role="admin",
        is_banned=False,
    )
    db.add(user)
    await db.commit()

    await AuditEmitter(SessionLocal).record(
        AuditActor.from_user(user),
        "user_signup",
        f"Administrador {email} criado via script",
        {"user_id": str(user.id), "email": email, "name": name, "used_master_token": False},
    )

    print()
    print("✅ Administrador criado com sucesso!")
    print(f"   Email: {email}")
    print("   Role: admin")


async def promote_existing_user(db, users):
    print("Usuários disponíveis:")
    print()
    for i, user in enumerate(users, 1):
        banned = " (banido)" if user.is_banned else ""
        print(f"  [{i}] {user.email:40} | Role: {user.role:6}{banned}")

    print()
    choice = input("Número do usuário para promover a admin: ").strip()
    try:
        index = int(choice) - 1
        if index < 0 or index >= len(users):
            print("❌ Número inválido")
            return
    except ValueError:
        print("❌ Entrada inválida")
        return

    user = users[index]
    if user.role == "admin":
        print(f"⚠️  {user.email} já é admin")
        return

    confirm = input(f"Promover {user.email} para admin? (s/N): ").strip().lower()
    if confirm != "s":
        print("❌ Operação cancelada")
        return

    user.role = "admin"
    user.is_banned = False
    if not user.password_hash:
        password = input("Usuário sem senha local. Defina uma (mín. 8 caracteres): ").strip()
        if len(password) < 8:
            print("❌ Senha deve ter no mínimo 8 caracteres")
            return
        user.password_hash = hash_password(password)

    await db.commit()
    print()
    print(f"✅ {user.email} promovido a admin com sucesso!")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\n❌ Operação cancelada pelo usuário")
        sys.exit(1)
