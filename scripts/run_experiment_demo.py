#!/usr/bin/env python3
"""
Generate experiment orders for a batch of demo users and save them.

Writes <out-dir>/<email>.json per user plus users_summary.csv.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))


def main():
    parser = argparse.ArgumentParser(description="Save experiment orders for demo users")
    parser.add_argument("--users", type=int, default=20, help="Number of demo users")
    parser.add_argument("--range", type=int, nargs="+", default=list(range(1, 9)), help="Condition numbers")
    parser.add_argument("--keep-first", action="store_true", help="Pin the first condition")
    parser.add_argument("--out-dir", default=str(ROOT / "artifacts" / "users"), help="Output directory")
    opts = parser.parse_args()

    from src.exp_run.assignment import compute_order
    from src.exp_run.results import read_saved_users, write_user_details, write_users_summary
    from src.exp_run.validation import validate_range
    from src.exp_run.schema import RangeSpecification

    out_dir = Path(opts.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    spec = RangeSpecification(values=tuple(validate_range(opts.range)), pin_first=opts.keep_first)
    print(f"1. Computing orders for {opts.users} users over {list(spec.values)} (pin_first={spec.pin_first})...")
    for i in range(opts.users):
        email = f"user{i:03d}@example.com"
        order = compute_order(email, spec)
        write_user_details(out_dir, email, order.as_list())

    print("2. Summarizing...")
    summary_path = write_users_summary(out_dir)
    df = read_saved_users(out_dir)
    print(df["first_condition"].value_counts().sort_index().to_string())

    print(f"\n[OK] Demo complete. {len(df)} users saved in {out_dir}, summary at {summary_path}")


if __name__ == "__main__":
    main()
