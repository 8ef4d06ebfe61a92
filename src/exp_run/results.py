"""
Saved user details.

Writes one ``<save-dir>/<email>.json`` per user and reads them back as a
table for summaries.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .errors import ConfigurationMissing, TransientIOError, ValidationError
from .schema import UserDetails

logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "users_summary.csv"
SUMMARY_COLUMNS = ["email", "exp_order", "n_conditions", "first_condition"]


def user_details_path(save_dir, email: str) -> Path:
    return Path(save_dir) / f"{email}.json"


def write_user_details(save_dir: Optional[Path], email: Optional[str], order: List[int]) -> Path:
    """
    Write the user's email and experiment order to the save directory.

    Raises:
        ConfigurationMissing: no save directory, or no user / order to save
        ValidationError: the email would put the file outside save_dir
    """
    if not save_dir or not Path(save_dir).is_dir():
        raise ConfigurationMissing("Cannot save user details to non-existent folder")
    if not email or not order:
        raise ConfigurationMissing("Cannot save non-existent user details")

    path = user_details_path(save_dir, email)
    if path.resolve().parent != Path(save_dir).resolve():
        raise ValidationError(f"Cannot save user details for {email!r} outside the save directory")
    details = UserDetails(email=email, exp_order=[int(n) for n in order])
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(details.to_dict(), f)
    except OSError as e:
        logger.error(f"Could not write {path}: {e}")
        raise TransientIOError(f"Could not write {path}: {e}") from e
    logger.info(f"User details written to {path}")
    return path


def read_saved_users(save_dir) -> pd.DataFrame:
    """Load every saved user file in save_dir. Unreadable files are skipped."""
    rows = []
    for path in sorted(Path(save_dir).glob("*.json")):
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            order = [int(n) for n in data["exp_order"]]
            email = str(data["email"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Skipping {path.name}: {e}")
            continue
        rows.append({
            "email": email,
            "exp_order": order,
            "n_conditions": len(order),
            "first_condition": order[0] if order else None,
        })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def write_users_summary(save_dir, out_path: Optional[str] = None) -> Path:
    """Write a CSV summary of saved users (exp_order joined with spaces)."""
    if not save_dir or not Path(save_dir).is_dir():
        raise ConfigurationMissing("Cannot summarize saved users as the save directory is not set")
    df = read_saved_users(save_dir)
    df["exp_order"] = df["exp_order"].map(lambda order: " ".join(str(n) for n in order))
    path = Path(out_path) if out_path else Path(save_dir) / SUMMARY_FILENAME
    try:
        df.to_csv(path, index=False)
    except OSError as e:
        raise TransientIOError(f"Could not write {path}: {e}") from e
    logger.info(f"Summary of {len(df)} users written to {path}")
    return path
