"""WhatsApp contact hand-off and contact log management."""

import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from marketplace.utils.db import (ContactLog, ContactLogRepository,
                                  InvalidStatusTransition, ProductRepository)
from marketplace.utils.formatting import format_datetime, format_whatsapp_url
from marketplace.utils.schemas import (ContactLogResponse, ContactRequest,
                                       ContactResponse, ContactStatusUpdate)

logger = logging.getLogger(__name__)


def to_contact_log_response(log: ContactLog) -> ContactLogResponse:
    return ContactLogResponse(
        id=log.id,
        user_id=log.user_id,
        product_id=log.product_id,
        product_name=log.product_name,
        user_name=log.user_name,
        user_whatsapp=log.user_whatsapp,
        contact_method=log.contact_method,
        status=log.status,
        notes=log.notes,
        contacted_at=log.contacted_at,
        contacted_label=format_datetime(log.contacted_at),
    )


class ContactService:
    """Logs buyer contacts and builds the WhatsApp deep links."""

    def __init__(self, db: Session) -> None:
        self._products = ProductRepository(db)
        self._logs = ContactLogRepository(db)

    def start_contact(
        self, product_id: int, request: ContactRequest, buyer_id: int | None = None
    ) -> ContactResponse:
        """Record a contact and return the link that opens the vendor chat.

        Args:
            product_id: Product the buyer is asking about
            request: Buyer name, number and optional message
            buyer_id: Profile id of the buyer when signed in

        Raises:
            HTTPException: If the product is not available
        """
        product = self._products.get_listed(product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not available",
            )

        vendor = product.vendor
        log = self._logs.create(
            user_id=buyer_id,
            vendor_id=vendor.id,
            product_id=product.id,
            user_name=request.user_name,
            user_whatsapp=request.user_whatsapp,
            vendor_name=vendor.full_name,
            product_name=product.name,
        )

        whatsapp_url = format_whatsapp_url(
            vendor.whatsapp_number,
            request.message,
            include_ref=True,
            user_id=buyer_id,
            product_id=product.id,
        )
        return ContactResponse(contact_id=log.id, whatsapp_url=whatsapp_url)

    def list_vendor_contacts(self, vendor_id: int, limit: int = 20) -> list[ContactLogResponse]:
        """Get a vendor's contact logs, most recent first."""
        return [
            to_contact_log_response(log)
            for log in self._logs.list_for_vendor(vendor_id, limit)
        ]

    def update_status(
        self, log_id: int, update: ContactStatusUpdate, actor_id: int
    ) -> ContactLogResponse:
        """Move a contact log to a new status on behalf of its vendor.

        Raises:
            HTTPException: 404 if missing, 403 for other vendors, 409 if the
                lifecycle does not allow the change
        """
        log = self._logs.get_by_id(log_id)
        if not log:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Contact log not found"
            )
        if log.vendor_id != actor_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not allowed to update this contact",
            )

        try:
            log = self._logs.update_status(log_id, update.status, update.notes)
        except InvalidStatusTransition as e:
            logger.warning(str(e))
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

        return to_contact_log_response(log)
