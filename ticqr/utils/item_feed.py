"""
Expected-item feed retrieval and parsing.

The server describes every tick box printed on a form page:

    {
        "status": "ok",
        "destination": "orders@example.com",
        "tickBoxes": [
            {"x": 120, "y": 340, "description": "Milk", "quantity": 2},
            ...
        ]
    }

A status other than "ok" yields no items. A malformed response is an error;
a partially parsed item list is never returned.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional

import requests

from ..exceptions import ItemFeedError
from ..logger import get_logger
from ..models import ExpectedItem, ItemFeed, Point

if TYPE_CHECKING:
    from ..config import FeedConfig

logger = get_logger(__name__)


def _parse_item(entry: Any, index: int) -> ExpectedItem:
    if not isinstance(entry, dict):
        raise ItemFeedError(f"Tick box {index} is not an object")

    try:
        x, y = entry["x"], entry["y"]
        description = entry["description"]
        quantity = entry["quantity"]
    except KeyError as e:
        raise ItemFeedError(f"Tick box {index} is missing field {e}") from e

    for name, value in (("x", x), ("y", y), ("quantity", quantity)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ItemFeedError(f"Tick box {index} field '{name}' is not an integer: {value!r}")
    if not isinstance(description, str):
        raise ItemFeedError(f"Tick box {index} description is not a string")
    if quantity <= 0:
        raise ItemFeedError(f"Tick box {index} quantity must be positive: {quantity}")

    # every box is assumed ticked until the image shows otherwise
    return ExpectedItem(
        source_position=Point(float(x), float(y)),
        description=description,
        quantity=quantity,
    )


def parse_item_feed(payload: Any) -> ItemFeed:
    """
    Parse a decoded server response into an ItemFeed.

    Args:
        payload: Decoded JSON response

    Returns:
        ItemFeed (with no items unless status is "ok")

    Raises:
        ItemFeedError: If the response is malformed
    """
    if not isinstance(payload, dict):
        raise ItemFeedError("Feed response is not a JSON object")

    status = payload.get("status")
    if not isinstance(status, str):
        raise ItemFeedError("Feed response has no status")
    if status != "ok":
        logger.warning(f"Feed returned status '{status}'")
        return ItemFeed(status=status)

    destination = payload.get("destination")
    if destination is not None and not isinstance(destination, str):
        raise ItemFeedError("Feed destination is not a string")

    if "tickBoxes" not in payload:
        raise ItemFeedError("Feed response has no tickBoxes")
    boxes = payload["tickBoxes"]
    if boxes is not None and not isinstance(boxes, list):
        raise ItemFeedError("Feed tickBoxes is not a list")

    items = []
    if boxes and boxes[0] is not None:
        items = [_parse_item(entry, i) for i, entry in enumerate(boxes)]

    return ItemFeed(status=status, destination=destination or None, items=items)


def parse_item_feed_text(text: str) -> ItemFeed:
    """Parse a raw JSON feed document (e.g. read from a file)."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ItemFeedError(f"Invalid feed JSON: {e}", response_text=text) from e
    return parse_item_feed(payload)


class ItemFeedClient:
    """Fetch the expected tick boxes of a form page from the server."""

    def __init__(self, feed_config: FeedConfig, session: Optional[requests.Session] = None):
        self.config = feed_config
        self.session = session or requests.Session()

    def fetch(self, page_id: str) -> ItemFeed:
        """
        Look up a page by the id decoded from its QR code.

        Raises:
            ItemFeedError: On connection failure, HTTP error or malformed response
        """
        url = self.config.server_url
        params = {self.config.lookup_param: page_id}
        logger.debug(f"Looking up page {page_id} at {url}")

        try:
            response = self.session.get(url, params=params, timeout=self.config.timeout_sec)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ItemFeedError(f"Feed request failed: {e}", url=url, page_id=page_id) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ItemFeedError(
                "Feed response is not valid JSON", url=url, page_id=page_id, response_text=response.text
            ) from e

        try:
            feed = parse_item_feed(payload)
        except ItemFeedError as e:
            e.details.update({"url": url, "page_id": page_id})
            raise

        logger.info(f"Page {page_id}: {len(feed.items)} expected tick boxes")
        return feed
