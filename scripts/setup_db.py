"""
Database setup script for Supabase.
Prints the table migrations, checks the connection and can bootstrap the
first super admin (role assignment otherwise needs an existing super admin).
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from auth.identity import SupabaseIdentityProvider
from config import load_settings
from db.supabase_client import SupabaseBookingStore
from models.admin import AdminClaims, AdminRole, permissions_for_role

MIGRATION_SQL = """
CREATE TABLE IF NOT EXISTS bookings (
    id BIGSERIAL PRIMARY KEY,
    customer_name TEXT NOT NULL,
    customer_phone TEXT NOT NULL,
    customer_email TEXT,
    service_name TEXT NOT NULL,
    booking_date TIMESTAMPTZ,
    rental_start TIMESTAMPTZ,
    rental_end TIMESTAMPTZ,
    notes TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    payment_link TEXT,
    paid_at TIMESTAMPTZ,
    owner_notified_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS bookings_status_created_idx ON bookings (status, created_at DESC);

CREATE TABLE IF NOT EXISTS admin_logs (
    id BIGSERIAL PRIMARY KEY,
    action TEXT NOT NULL,
    performed_by TEXT,
    target_uid TEXT,
    booking_id TEXT,
    role TEXT,
    status TEXT,
    reason TEXT,
    request_id TEXT,
    incident_id TEXT,
    backup_id TEXT,
    severity TEXT,
    timestamp TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS admin_logs_rate_idx ON admin_logs (performed_by, action, timestamp DESC);

CREATE TABLE IF NOT EXISTS system_status (
    key TEXT PRIMARY KEY,
    payments_disabled BOOLEAN NOT NULL DEFAULT false,
    reason TEXT,
    updated_by TEXT,
    updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS pending_role_assignments (
    id BIGSERIAL PRIMARY KEY,
    target_uid TEXT NOT NULL,
    role TEXT NOT NULL,
    business_justification TEXT NOT NULL,
    manager_approval BOOLEAN NOT NULL DEFAULT false,
    requested_by TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending_super_admin_approval',
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    decided_by TEXT,
    decided_at TIMESTAMPTZ,
    decision_reason TEXT
);

CREATE TABLE IF NOT EXISTS emergency_backups (
    backup_id TEXT PRIMARY KEY,
    incident_id TEXT NOT NULL,
    severity TEXT NOT NULL,
    justification TEXT NOT NULL,
    created_by TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    status TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS alerts (
    id BIGSERIAL PRIMARY KEY,
    type TEXT NOT NULL,
    value NUMERIC,
    threshold NUMERIC,
    severity TEXT,
    timestamp TIMESTAMPTZ NOT NULL DEFAULT now()
);

ALTER TABLE bookings ENABLE ROW LEVEL SECURITY;
ALTER TABLE admin_logs ENABLE ROW LEVEL SECURITY;
ALTER TABLE system_status ENABLE ROW LEVEL SECURITY;
ALTER TABLE pending_role_assignments ENABLE ROW LEVEL SECURITY;
ALTER TABLE emergency_backups ENABLE ROW LEVEL SECURITY;
ALTER TABLE alerts ENABLE ROW LEVEL SECURITY;
"""


async def bootstrap_super_admin(identity: SupabaseIdentityProvider, uid: str, emergency: bool) -> None:
    """Write super admin claims for a user directly with the service key."""
    claims = AdminClaims(
        uid=uid,
        admin=True,
        role=AdminRole.SUPER_ADMIN,
        permissions=permissions_for_role(AdminRole.SUPER_ADMIN),
        emergency_access=emergency,
    )
    await identity.set_claims(uid, claims.to_metadata())
    print(f"✅ {uid} is now super_admin (emergency_access={emergency})")
    print("Remember to list this uid in SUPER_ADMIN_UIDS.")


async def main():
    """Main setup function."""
    parser = argparse.ArgumentParser(description="Set up the booking database")
    parser.add_argument("--print-sql", action="store_true", help="Print the table migrations")
    parser.add_argument("--super-admin", metavar="UID", help="Grant super admin claims to a user")
    parser.add_argument("--emergency", action="store_true", help="Also grant emergency access")
    args = parser.parse_args()

    if args.print_sql:
        print(MIGRATION_SQL)
        return

    print("🚀 Setting up database...")
    print("\nNote: Make sure you've run the SQL migrations in Supabase SQL Editor first!")
    print("Run with --print-sql to see them.\n")

    settings = load_settings()
    if not settings.has_supabase():
        print("❌ Error: SUPABASE_URL and SUPABASE_KEY must be set")
        sys.exit(1)

    try:
        store = SupabaseBookingStore(settings.supabase_url, settings.supabase_key)
        bookings = await store.query_bookings(limit=1)
        print(f"✅ Database connection successful ({len(bookings)} booking(s) sampled)")

        if args.super_admin:
            identity = SupabaseIdentityProvider(settings.supabase_url, settings.supabase_key)
            await bootstrap_super_admin(identity, args.super_admin, args.emergency)

        print("\n✅ Database setup complete!")

    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
