#!/usr/bin/env python3
"""
Audit Trail Export Script

Exports the full audit trail of one sale from the Supabase database to CSV.

Usage:
    python export_audit_trail.py --sale-id <uuid> --output trail.csv
    python export_audit_trail.py --sale-id <uuid> --action CONCILIAR --output links.csv
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import configure_logging
from domain.audit import AuditAction
from domain.errors import ReconciliationError
from services.audit_export_service import generate_audit_csv


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Export a sale's audit trail from Supabase to CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export the whole trail
  python export_audit_trail.py --sale-id 123e4567-e89b-12d3-a456-426614174000 -o trail.csv

  # Export only manual reconciliations
  python export_audit_trail.py --sale-id 123e4567-e89b-12d3-a456-426614174000 --action CONCILIAR -o links.csv
        """
    )

    parser.add_argument(
        "--sale-id",
        required=True,
        type=UUID,
        help="ID of the sale (vendas_internas.id)"
    )

    parser.add_argument(
        "--output",
        "-o",
        required=True,
        help="Path to output CSV file"
    )

    parser.add_argument(
        "--action",
        "-a",
        choices=[action.value for action in AuditAction],
        help="Only export entries with this action"
    )

    args = parser.parse_args()
    configure_logging()

    try:
        print(f"Fetching audit trail for sale {args.sale_id}...")
        csv_content = generate_audit_csv(
            args.sale_id,
            action=AuditAction(args.action) if args.action else None,
        )
    except ReconciliationError as e:
        print(f"\n✗ Export failed: {e}", file=sys.stderr)
        return 1

    with open(args.output, "w", newline="", encoding="utf-8") as f:
        f.write(csv_content)

    print(f"✓ Audit trail written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
