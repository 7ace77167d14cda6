#!/usr/bin/env python
"""Idempotent seed script for the admin account and the device catalog.

Usage:
    python backend/scripts/seed_admin.py              # seed normally
    python backend/scripts/seed_admin.py --dry-run    # run logic then rollback (no DB changes)
    python backend/scripts/seed_admin.py --no-devices # admin account only
"""
from __future__ import annotations
import os, argparse, textwrap
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from techservice import create_app, get_db
from techservice.models.accounts import AdminUser, Base
from techservice.models.ticket import Device
from techservice.models import audit  # noqa: F401
from techservice.utils.clock import utcnow

DEFAULT_DEVICES = (
    'Evrak İmha Makinesi',
    'Akıllı Dijital Kürsü',
    'Hava Temizleme Cihazı',
    'FlexPack Karton Geri Dönüşüm Makinesi',
)


def ensure_admin(session) -> bool:
    email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    existing = session.execute(select(AdminUser).where(AdminUser.email == email)).scalar_one_or_none()
    if existing:
        return False
    user = AdminUser(email=email, name=os.getenv('SEED_ADMIN_NAME', 'Admin'))
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    print(f"[INFO] Created admin user {email} with temporary password.")
    return True


def ensure_devices(session, names=DEFAULT_DEVICES) -> int:
    existing = set(session.execute(select(Device.device_type)).scalars().all())
    created = 0
    for name in names:
        if name not in existing:
            session.add(Device(device_type=name, created_at=utcnow()))
            created += 1
    return created


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed the admin account and default devices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_admin.py\n  dry run: seed_admin.py --dry-run\n"""),
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--no-devices', action='store_true', help='Skip the default device catalog')
    return p.parse_args(argv)


def main(argv=None, app=None):
    args = parse_args(argv)
    app = app or create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM admin_users LIMIT 1'))
        except SQLAlchemyError:
            session.rollback()
            # Bootstrap only; real deployments run alembic upgrade head
            Base.metadata.create_all(session.get_bind())
        created_admin = ensure_admin(session)
        created_devices = 0 if args.no_devices else ensure_devices(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Admin would create: {int(created_admin)}, Devices would create: {created_devices}")
        else:
            session.commit()
            print(f"[DONE] Admin created: {int(created_admin)}, Devices created: {created_devices}")
    return created_admin, created_devices


if __name__ == '__main__':
    main()
