#!/usr/bin/env python3
"""
Generate the IPS QR payload for a payment slip stored as JSON.
"""
import argparse
import json
import sys
import os

# Add the project root to Python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from pydantic import ValidationError

from app.schemas import PaymentRecord
from app.services.ips_service import IPSService


def main():
    """Main generator function."""
    parser = argparse.ArgumentParser(description="Generate an NBS IPS QR code for a payment slip")
    parser.add_argument("slip", help="JSON file with the payment slip fields")
    parser.add_argument("--png", help="Write the QR code image to this file")
    args = parser.parse_args()

    try:
        with open(args.slip, encoding="utf-8") as slip_file:
            record = PaymentRecord.model_validate(json.load(slip_file))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Could not read payment slip: {e}", file=sys.stderr)
        sys.exit(1)

    result = IPSService.generate(record)
    for field, message in result.errors.items():
        print(f"{field}: {message}", file=sys.stderr)

    if result.qr_string is None:
        print("Payment slip is incomplete, no QR code generated", file=sys.stderr)
        sys.exit(1)

    print(result.qr_string)

    if args.png:
        with open(args.png, "wb") as png_file:
            png_file.write(IPSService.render_png(result.qr_string))
        print(f"QR code written to {args.png}", file=sys.stderr)


if __name__ == "__main__":
    main()
