"""Book lookup: library identifiers straight to OpenLibrary, barcodes via UPCitemdb."""

from __future__ import annotations

import logging

from mediaset.domain.entities import BookResponse, IdentifierType, MediaType
from mediaset.domain.ports import (
    IBarcodeLookupClient,
    IBookMetadataClient,
    ILookupStrategy,
)
from mediaset.infrastructure.observability.tracing import get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

LIBRARY_IDENTIFIERS = frozenset(
    {
        IdentifierType.ISBN,
        IdentifierType.LCCN,
        IdentifierType.OCLC,
        IdentifierType.OLID,
    }
)
BARCODE_IDENTIFIERS = frozenset({IdentifierType.UPC, IdentifierType.EAN})


class BookLookupStrategy(ILookupStrategy):
    """Resolves books by isbn/lccn/oclc/olid, or by a barcode that embeds an ISBN."""

    media_type = MediaType.BOOK
    supported_identifier_types = LIBRARY_IDENTIFIERS | BARCODE_IDENTIFIERS

    def __init__(
        self,
        book_client: IBookMetadataClient,
        barcode_client: IBarcodeLookupClient,
    ) -> None:
        self._books = book_client
        self._barcodes = barcode_client

    async def lookup(
        self, identifier_type: IdentifierType, identifier_value: str
    ) -> BookResponse | None:
        with _tracer.start_as_current_span("lookup.book") as span:
            span.set_attribute("identifier.type", identifier_type.value)
            span.set_attribute("identifier.value", identifier_value)

            if identifier_type in BARCODE_IDENTIFIERS:
                isbn = await self._isbn_from_barcode(identifier_value)
                if isbn is None:
                    return None
                return await self._books.get_book(IdentifierType.ISBN, isbn)

            return await self._books.get_book(identifier_type, identifier_value)

    # Hey future me - plenty of book barcodes ARE the ISBN-13 (978/979 prefix), but UPCitemdb
    # also knows the odd UPC-A printed on mass-market paperbacks. Either way we only trust
    # the isbn field it hands back, never the barcode itself.
    async def _isbn_from_barcode(self, barcode: str) -> str | None:
        response = await self._barcodes.get_by_code(barcode)
        item = response.first if response else None
        if item is None:
            logger.info("No barcode listing for book barcode %s", barcode)
            return None

        isbn = (item.isbn or "").strip()
        if not isbn:
            logger.info("Barcode %s has no ISBN in its listing", barcode)
            return None
        return isbn
