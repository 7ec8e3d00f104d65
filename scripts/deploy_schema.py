#!/usr/bin/env python
# ============================================================================
# SCHEMA DEPLOYMENT SCRIPT
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# PURPOSE: Deploy clusterapp schema to PostgreSQL using PydanticToSQL
# USAGE:
#   python scripts/deploy_schema.py --dry-run    # Preview SQL
#   python scripts/deploy_schema.py              # Execute deployment
#   python scripts/deploy_schema.py --status     # Check current status
# ============================================================================

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import psycopg
from psycopg import sql

from core.config import DatabaseSettings
from core.schema import PydanticToSQL
from repositories.database import TABLE_CLUSTERS


def print_status(conn) -> None:
    row = conn.execute(
        "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
        "WHERE table_schema = 'clusterapp' AND table_name = 'clusters')"
    ).fetchone()
    if not row[0]:
        print("Table clusterapp.clusters does not exist")
        return

    print("Table clusterapp.clusters exists")
    rows = conn.execute(
        sql.SQL("SELECT status::text, COUNT(*) FROM {} GROUP BY status ORDER BY status").format(TABLE_CLUSTERS)
    ).fetchall()
    for status, count in rows:
        print(f"  - {status}: {count}")


def main():
    parser = argparse.ArgumentParser(
        description="Deploy clusterapp schema to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/deploy_schema.py --dry-run     # Preview DDL without executing
  python scripts/deploy_schema.py               # Deploy schema
  python scripts/deploy_schema.py --status      # Row counts per status

Environment Variables:
  DATABASE_URL          Full PostgreSQL connection string
  POSTGRES_HOST         Database host (default: localhost)
  POSTGRES_DB           Database name (default: postgres)
  POSTGRES_USER         Database user (default: postgres)
  POSTGRES_PASSWORD     Database password
  POSTGRES_PORT         Database port (default: 5432)
  POSTGRES_SSLMODE      SSL mode (default: require)
        """
    )
    parser.add_argument("--dry-run", action="store_true", help="Print DDL without executing")
    parser.add_argument("--status", action="store_true", help="Check current installation status")
    parser.add_argument("--connection", type=str, help="PostgreSQL connection string (overrides environment)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    generator = PydanticToSQL()

    if args.dry_run:
        for stmt in generator.generate_all():
            print(stmt.as_string(None) + ";")
        return

    conninfo = args.connection or DatabaseSettings.from_env().connection_string
    with psycopg.connect(conninfo, autocommit=True) as conn:
        if args.status:
            print_status(conn)
            return

        count = generator.execute(conn)
        print(f"Deployed {count} statements")


if __name__ == "__main__":
    main()
