"""Announcement sources and the external ledger interfaces.

The registry, announcement log and account factory live on chain; this
module only types them (``typing.Protocol``) and provides two concrete
sources: a Starknet JSON-RPC reader and an in-memory registry used by the
demo, the benchmark and the tests.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator
from typing import Any, Protocol, runtime_checkable

import httpx

from starknet_stealth.analysis.events import parse_announcement_event
from starknet_stealth.core.curve import assert_valid_point
from starknet_stealth.core.keys import validate_meta_address
from starknet_stealth.utils.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_PAGES,
    DEFAULT_REQUEST_TIMEOUT,
)
from starknet_stealth.utils.errors import (
    PaginationLimitExceeded,
    ScanCancelled,
    TransportError,
)
from starknet_stealth.utils.types import Announcement, EventPage, MetaAddress, Point

logger = logging.getLogger(__name__)


@runtime_checkable
class AnnouncementSource(Protocol):
    """Paginated read access to the announcement log."""

    def fetch_page(
        self,
        from_block: int,
        to_block: int | None,
        continuation_token: str | None,
    ) -> EventPage: ...


class MetaAddressRegistry(Protocol):
    def register_meta_address(
        self, user: str, spending_x: int, spending_y: int, viewing_x: int, viewing_y: int, scheme_id: int
    ) -> None: ...

    def update_meta_address(
        self, user: str, spending_x: int, spending_y: int, viewing_x: int, viewing_y: int, scheme_id: int
    ) -> None: ...

    def get_meta_address(self, user: str) -> MetaAddress: ...

    def has_meta_address(self, user: str) -> bool: ...

    def announce(
        self,
        scheme_id: int,
        ephemeral_x: int,
        ephemeral_y: int,
        stealth_address: int,
        view_tag: int,
        metadata: int,
    ) -> int: ...

    def get_announcement_count(self) -> int: ...


class AccountFactory(Protocol):
    def compute_address(self, pubkey_x: int, pubkey_y: int, salt: int) -> int: ...

    def deploy(self, pubkey_x: int, pubkey_y: int, salt: int) -> int: ...

    def get_class_id(self) -> int: ...


def iter_announcements(
    source: AnnouncementSource,
    from_block: int = 0,
    to_block: int | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    should_cancel: Callable[[], bool] | None = None,
) -> Iterator[Announcement]:
    """Yield parsed announcements page by page.

    At most ``max_pages`` pages are fetched; a source that still offers a
    continuation token after that raises PaginationLimitExceeded.
    Unparseable events are skipped. Transport errors propagate.
    """
    token: str | None = None
    for page_number in itertools.count():
        if page_number >= max_pages:
            logger.warning("Announcement source exceeded %d pages", max_pages)
            raise PaginationLimitExceeded(max_pages)
        if should_cancel is not None and should_cancel():
            raise ScanCancelled(f"Scan cancelled after {page_number} pages")

        page = source.fetch_page(from_block, to_block, token)
        logger.debug("Fetched page %d with %d events", page_number, len(page.events))

        for event in page.events:
            announcement = parse_announcement_event(event)
            if announcement is not None:
                yield announcement

        token = page.continuation_token
        if not token:
            return


def fetch_announcements(
    source: AnnouncementSource,
    from_block: int = 0,
    to_block: int | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    should_cancel: Callable[[], bool] | None = None,
) -> list[Announcement]:
    """The whole announcement range as a list."""
    return list(iter_announcements(source, from_block, to_block, max_pages, should_cancel))


class RpcEventSource:
    """Reads registry events through ``starknet_getEvents``.

    No retries: transport failures surface as TransportError so that retry
    policy stays with the caller's HTTP client.
    """

    def __init__(
        self,
        rpc_url: str,
        registry_address: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.registry_address = registry_address
        self.chunk_size = chunk_size
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None
        self._request_id = itertools.count(1)

    def build_request(
        self,
        from_block: int,
        to_block: int | None,
        continuation_token: str | None,
    ) -> dict[str, Any]:
        event_filter: dict[str, Any] = {
            "address": self.registry_address,
            "from_block": {"block_number": from_block},
            "to_block": {"block_number": to_block} if to_block is not None else "latest",
            "keys": [],
            "chunk_size": self.chunk_size,
        }
        if continuation_token:
            event_filter["continuation_token"] = continuation_token
        return {
            "jsonrpc": "2.0",
            "id": next(self._request_id),
            "method": "starknet_getEvents",
            "params": {"filter": event_filter},
        }

    def fetch_page(
        self,
        from_block: int,
        to_block: int | None,
        continuation_token: str | None,
    ) -> EventPage:
        payload = self.build_request(from_block, to_block, continuation_token)
        try:
            response = self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"starknet_getEvents request failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"starknet_getEvents returned invalid JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise TransportError("starknet_getEvents returned a non-object response")
        if body.get("error"):
            raise TransportError(f"starknet_getEvents error: {body['error']}")
        result = body.get("result")
        if not isinstance(result, dict):
            raise TransportError("starknet_getEvents response has no result")

        events = result.get("events") or []
        return EventPage(events=list(events), continuation_token=result.get("continuation_token"))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> RpcEventSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class InMemoryRegistry:
    """Registry plus append-only announcement log held in memory.

    Emits events in the CURRENT layout and serves them in pages of
    ``page_size`` with integer-offset continuation tokens.
    """

    def __init__(self, page_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self.block_number = 0
        self._meta_addresses: dict[str, MetaAddress] = {}
        self._events: list[dict[str, Any]] = []

    # -- Registry --

    def _build_meta(
        self, spending_x: int, spending_y: int, viewing_x: int, viewing_y: int, scheme_id: int
    ) -> MetaAddress:
        return validate_meta_address(
            MetaAddress(
                spending_key=Point(spending_x, spending_y),
                viewing_key=Point(viewing_x, viewing_y),
                scheme_id=scheme_id,
            )
        )

    def register_meta_address(
        self, user: str, spending_x: int, spending_y: int, viewing_x: int, viewing_y: int, scheme_id: int
    ) -> None:
        if user in self._meta_addresses:
            raise ValueError(f"Meta-address already registered for {user}")
        self._meta_addresses[user] = self._build_meta(
            spending_x, spending_y, viewing_x, viewing_y, scheme_id
        )

    def update_meta_address(
        self, user: str, spending_x: int, spending_y: int, viewing_x: int, viewing_y: int, scheme_id: int
    ) -> None:
        if user not in self._meta_addresses:
            raise KeyError(f"No meta-address registered for {user}")
        self._meta_addresses[user] = self._build_meta(
            spending_x, spending_y, viewing_x, viewing_y, scheme_id
        )

    def get_meta_address(self, user: str) -> MetaAddress:
        try:
            return self._meta_addresses[user]
        except KeyError:
            raise KeyError(f"No meta-address registered for {user}")

    def has_meta_address(self, user: str) -> bool:
        return user in self._meta_addresses

    # -- Announcement log --

    def announce(
        self,
        scheme_id: int,
        ephemeral_x: int,
        ephemeral_y: int,
        stealth_address: int,
        view_tag: int,
        metadata: int = 0,
    ) -> int:
        assert_valid_point(Point(ephemeral_x, ephemeral_y), "ephemeral public key")
        if not 0 <= view_tag <= 0xFF:
            raise ValueError("view_tag must fit in one byte")
        index = len(self._events)
        self.block_number += 1
        self._events.append(
            {
                "keys": ["0x0", hex(scheme_id), hex(view_tag)],
                "data": [hex(ephemeral_x), hex(ephemeral_y), hex(stealth_address), hex(metadata), hex(index)],
                "block_number": self.block_number,
                "transaction_hash": hex(0x7A0000 + index),
            }
        )
        return index

    def append_raw_event(self, event: dict[str, Any]) -> None:
        """Append an arbitrary (possibly malformed) event, bypassing checks."""
        self._events.append(event)

    def get_announcement_count(self) -> int:
        return len(self._events)

    def fetch_page(
        self,
        from_block: int,
        to_block: int | None,
        continuation_token: str | None,
    ) -> EventPage:
        in_range = [
            event
            for event in self._events
            if not isinstance(event, dict)
            or not isinstance(event.get("block_number"), int)
            or (event["block_number"] >= from_block and (to_block is None or event["block_number"] <= to_block))
        ]
        offset = int(continuation_token) if continuation_token else 0
        page = in_range[offset : offset + self.page_size]
        next_offset = offset + self.page_size
        token = str(next_offset) if next_offset < len(in_range) else None
        return EventPage(events=page, continuation_token=token)
