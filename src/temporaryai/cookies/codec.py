"""
Cookie export/import codec.

Turns a cookie jar into an export file and back:

    export: jar -> filter by domain -> (expiry override) -> JSON list
            -> (encrypt) -> ExportContainer -> JSON text
    import: JSON text -> ExportContainer (or legacy bare list)
            -> (decrypt) -> JSON list -> jar, counting accepted cookies

Export file format:

    {
      "isEncrypted": bool,
      "data": str,          # cookie-list JSON, or base64(nonce||ciphertext||tag)
      "salt": str | null    # base64, present iff isEncrypted
    }

Key derivation is deliberately slow, so the async entry points run crypto in
a worker thread. Store operations fan out with asyncio.gather and are all
awaited before a count is reported or the first store error is re-raised.
"""

import asyncio
import base64
import binascii
import json
import logging
from collections.abc import Awaitable, Iterable
from datetime import UTC, datetime, timedelta
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from temporaryai.cookies.crypto import CookieCrypto
from temporaryai.cookies.store import CookieStore
from temporaryai.errors import (
    ContainerParseError,
    CorruptedDataError,
    ExpiryOutOfRangeError,
    PasswordRequiredError,
)
from temporaryai.schema import CookieRecord, ExportContainer

logger = logging.getLogger(__name__)

T = TypeVar("T")

_COOKIE_LIST = TypeAdapter(list[CookieRecord])


def filter_cookies(cookies: Iterable[CookieRecord], domains: Iterable[str]) -> list[CookieRecord]:
    """Keep cookies whose domain contains any of the given suffixes."""
    domains = [d for d in domains if d]
    return [c for c in cookies if any(d in c.domain for d in domains)]


def dump_cookie_list(cookies: Iterable[CookieRecord]) -> str:
    """Serialize cookies to the export file's JSON list form."""
    return json.dumps([c.to_wire() for c in cookies], indent=2)


def load_cookie_list(content: str | bytes) -> list[CookieRecord]:
    """
    Parse a JSON cookie list.

    Raises:
        ValidationError: If the content is not a list of cookie records
    """
    return _COOKIE_LIST.validate_json(content)


class CookieCodec:
    """
    Builds and reads cookie export containers.

    Usage:
        codec = CookieCodec()
        text = await codec.export_cookies(store, ["chatgpt.com"], password="pw")
        count = await codec.import_cookies(store, text, password="pw")

    Attributes:
        crypto: The CookieCrypto used for encrypted containers
    """

    def __init__(self, crypto: CookieCrypto | None = None) -> None:
        self.crypto = crypto or CookieCrypto()

    # =========================================================================
    # Container building and reading (synchronous)
    # =========================================================================

    def build_container(
        self,
        cookies: Iterable[CookieRecord],
        password: str | None = None,
        expiry_duration: timedelta | None = None,
        now: datetime | None = None,
    ) -> ExportContainer:
        """
        Wrap cookies in an export container.

        Args:
            cookies: Cookies to export (already filtered)
            password: Encrypt with this password if non-empty
            expiry_duration: If set, every cookie expires at now + duration
            now: Reference time for the expiry override (defaults to UTC now)

        Returns:
            ExportContainer satisfying salt-present-iff-encrypted

        Raises:
            ExpiryOutOfRangeError: If now + expiry_duration is not a valid date
        """
        records = list(cookies)
        if expiry_duration is not None:
            try:
                expires = (now or datetime.now(UTC)) + expiry_duration
            except OverflowError:
                raise ExpiryOutOfRangeError(
                    days=expiry_duration / timedelta(days=1),
                ) from None
            records = [c.model_copy(update={"expires": expires}) for c in records]

        payload = dump_cookie_list(records)

        if not password:
            return ExportContainer(is_encrypted=False, data=payload, salt=None)

        sealed = self.crypto.encrypt(payload.encode("utf-8"), password)
        return ExportContainer(
            is_encrypted=True,
            data=base64.b64encode(sealed.ciphertext).decode("ascii"),
            salt=base64.b64encode(sealed.salt).decode("ascii"),
        )

    def serialize_container(self, container: ExportContainer) -> str:
        """Render a container as the text written to the export file."""
        return json.dumps(container.to_wire(), indent=2)

    def parse_container(self, content: str | bytes) -> ExportContainer:
        """
        Parse export file text.

        Accepts the current container format and the legacy format (a bare
        JSON list of cookies), which is wrapped as an unencrypted container.

        Raises:
            ContainerParseError: If the input is neither
        """
        try:
            return ExportContainer.model_validate_json(content)
        except ValidationError as container_error:
            try:
                load_cookie_list(content)
            except ValidationError:
                raise ContainerParseError(
                    underlying_error=_first_error(container_error),
                ) from container_error

        text = content.decode("utf-8") if isinstance(content, bytes) else content
        logger.info("Read legacy cookie list without container")
        return ExportContainer(is_encrypted=False, data=text, salt=None)

    def decode_records(
        self,
        container: ExportContainer,
        password: str | None = None,
    ) -> list[CookieRecord]:
        """
        Recover the cookie list from a container.

        Raises:
            PasswordRequiredError: Encrypted container and no password
            CorruptedDataError: Missing or undecodable salt/payload
            InvalidPasswordError: Wrong password or tampered ciphertext
            ContainerParseError: Unencrypted payload is not a cookie list
        """
        if not container.is_encrypted:
            try:
                return load_cookie_list(container.data)
            except ValidationError as e:
                raise ContainerParseError(underlying_error=_first_error(e)) from e

        if not password:
            raise PasswordRequiredError()

        if container.salt is None:
            raise CorruptedDataError(field_name="salt")
        salt = _b64decode(container.salt, "salt")
        ciphertext = _b64decode(container.data, "data")
        if len(salt) != self.crypto.SALT_SIZE:
            raise CorruptedDataError(field_name="salt")
        if len(ciphertext) < self.crypto.NONCE_SIZE + self.crypto.TAG_SIZE:
            raise CorruptedDataError(field_name="data")

        plaintext = self.crypto.decrypt(ciphertext, password, salt)
        try:
            return load_cookie_list(plaintext)
        except ValidationError as e:
            logger.warning("Decrypted cookie payload is not a cookie list")
            raise CorruptedDataError(field_name="data") from e

    # =========================================================================
    # Store operations (asynchronous)
    # =========================================================================

    async def export_cookies(
        self,
        store: CookieStore,
        domains: Iterable[str],
        password: str | None = None,
        expiry_duration: timedelta | None = None,
    ) -> str:
        """
        Export the store's cookies for the given domain suffixes.

        Returns:
            Export file text
        """
        cookies = filter_cookies(await store.get_all_cookies(), domains)
        container = await asyncio.to_thread(
            self.build_container, cookies, password, expiry_duration
        )
        logger.info(
            "Exported %d cookies (%s)",
            len(cookies),
            "encrypted" if container.is_encrypted else "plain",
        )
        return self.serialize_container(container)

    async def import_cookies(
        self,
        store: CookieStore,
        content: str | bytes | ExportContainer,
        password: str | None = None,
    ) -> int:
        """
        Import an export file into the store.

        Insertions run concurrently; a cookie the store rejects is skipped,
        not an error.

        Returns:
            Number of cookies the store accepted
        """
        container = (
            content if isinstance(content, ExportContainer) else self.parse_container(content)
        )
        records = await asyncio.to_thread(self.decode_records, container, password)

        results = await _join_all(store.set_cookie(r) for r in records)
        accepted = sum(1 for ok in results if ok is True)
        if accepted < len(records):
            logger.warning("Store rejected %d of %d cookies", len(records) - accepted, len(records))
        logger.info("Imported %d cookies", accepted)
        return accepted

    async def clear_cookies(self, store: CookieStore, domains: Iterable[str]) -> int:
        """
        Delete every cookie whose domain contains one of the given suffixes.

        Returns:
            Number of cookies deleted
        """
        cookies = filter_cookies(await store.get_all_cookies(), domains)
        await _join_all(store.delete_cookie(c) for c in cookies)
        logger.info("Cleared %d cookies", len(cookies))
        return len(cookies)


async def _join_all(operations: Iterable[Awaitable[T]]) -> list[T]:
    """
    Await every store operation, then raise the first failure if any.

    No operation is left running when this returns or raises, so callers may
    close the store straight afterwards.
    """
    results = await asyncio.gather(*operations, return_exceptions=True)
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        if len(failures) > 1:
            logger.warning("%d cookie store operations failed", len(failures))
        raise failures[0]
    return results


def _b64decode(value: str, field_name: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CorruptedDataError(field_name=field_name) from e


def _first_error(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return str(error)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]
