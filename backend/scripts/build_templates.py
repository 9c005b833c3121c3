import os
import sys
import argparse
import dotenv

# Load env vars
dotenv.load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

# Add backend to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from lr_billing.core.config import settings
from lr_billing.services.template_factory import build_default_templates


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Write the starter billing templates (shipment copy, invoice, bills, ledger)."
    )
    parser.add_argument(
        "--dir",
        default=settings.TEMPLATES_DIR,
        help="Target templates folder (default: TEMPLATES_DIR)",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace templates that already exist",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    existing = {name for name in os.listdir(args.dir)} if os.path.isdir(args.dir) else set()
    written = build_default_templates(args.dir, overwrite=args.overwrite)

    print(f"Templates in {os.path.abspath(args.dir)}:")
    for name, path in written.items():
        state = "kept" if name in existing and not args.overwrite else "written"
        print(f"  [{state}] {path.name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
