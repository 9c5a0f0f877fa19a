"""
Delivery of the collected deck records: a local JSON file or a POST to a
remote endpoint (a Google Apps Script web app in production).
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import requests

from .core import logger

POST_TIMEOUT = 60


def write_records(records: List[Dict[str, Any]], output_file: Path) -> bool:
    """Write records as pretty JSON; returns False if the file could not be written"""
    try:
        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error(f"Failed to write deck data to {output_file}: {e}")
        return False

    logger.info(f"Deck data has been written to {output_file}")
    return True


def post_records(records: List[Dict[str, Any]], post_url: str) -> bool:
    """POST records as a JSON array; returns True on a 2xx response"""
    logger.info(f"Posting {len(records)} decks to remote endpoint...")
    try:
        response = requests.post(post_url, json=records, timeout=POST_TIMEOUT)
    except requests.RequestException as e:
        logger.error(f"Error during POSTing all decks: {e}")
        return False

    if not response.ok:
        logger.error(f"Failed to POST all decks ({response.status_code}): {response.text[:500]}")
        return False

    logger.info("Successfully POSTed all decks")
    return True
