"""Proof-of-payment ingestion.

Uploaded evidence arrives as a base64 string, optionally wrapped in a
data URI. ``ProofService`` decodes it, writes it through the blob
storage port and links the stored path to the order row.
"""

import base64
import binascii
import logging
import re
from datetime import datetime
from typing import Callable, Optional

from .domain import (
    BlobStoragePort,
    DecodeError,
    PaymentStatus,
    StorePort,
    epoch_millis,
    load_order,
    parse_payload,
    update_order,
    utcnow,
)
from .schemas import ProofUploadIn

logger = logging.getLogger("orders.proofs")

DATA_URI_RE = re.compile(r"^data:[^,]*?;base64,", re.IGNORECASE)
DEFAULT_EXTENSION = "jpg"


def decode_payload(encoded: str) -> bytes:
    """Decode a base64 payload, stripping a ``data:<type>;base64,`` header.

    Raises:
        DecodeError: If the payload is not valid base64 or decodes to
            zero bytes.
    """
    body = DATA_URI_RE.sub("", encoded.strip(), count=1)
    try:
        data = base64.b64decode(body)
    except (binascii.Error, ValueError):
        raise DecodeError("Failed to decode base64 file data")
    if not data:
        raise DecodeError("Failed to decode base64 file data")
    return data


def file_extension(filename: str) -> str:
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot and ext else DEFAULT_EXTENSION


class ProofService:
    """Domain service storing payment evidence and linking it to orders."""

    def __init__(self, store: StorePort, storage: BlobStoragePort, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.storage = storage
        self.clock = clock

    def upload(self, order_id, filename: str, file: str, payment_method: Optional[str] = None) -> dict:
        """Store an uploaded proof and mark the order payment as pending.

        The order row is always the target, even for credit payments that
        have a dedicated payment record.

        Returns:
            dict: ``{"order": <updated order>, "file_info": {...}}``.

        Raises:
            ValidationError: On missing fields or a non-numeric order id,
                before the store is touched.
            NotFoundError: If the order does not exist.
            DecodeError: If the payload cannot be decoded.
            StoreError: If the file or the order update cannot be written.
        """
        dto = parse_payload(ProofUploadIn, {
            "order_id": order_id,
            "filename": filename,
            "file": file,
            "payment_method": payment_method,
        })
        load_order(self.store, dto.order_id)

        data = decode_payload(dto.file)
        now = self.clock()
        stored_name = f"payment_{dto.order_id}_{epoch_millis(now)}.{file_extension(dto.filename)}"
        path = self.storage.write_file(stored_name, data)
        logger.info("payment proof stored", extra={"order_id": dto.order_id, "path": path, "size": len(data)})

        patch = {
            "payment_proof": path,
            "payment_status": PaymentStatus.PENDING.value,
            "updated_at": now,
        }
        if dto.payment_method:
            patch["payment_method"] = dto.payment_method
        order = update_order(self.store, dto.order_id, patch)

        return {
            "order": order,
            "file_info": {
                "filename": stored_name,
                "file_path": path,
                "file_size": len(data),
                "uploaded_at": now,
            },
        }
