"""Odoo ERP source — fetches a sales order PDF and its linked purchase order PDF.

Records are looked up over XML-RPC; the sales order report is downloaded
through an authenticated HTTP session, the purchase order PDF is read from
its attachments.
"""

from __future__ import annotations

import base64
import re
import xmlrpc.client
from dataclasses import dataclass
from typing import Any, Optional

import requests
import structlog

from ordercompare.config import settings
from ordercompare.errors import OdooError
from ordercompare.schemas.documents import SourceDocument
from ordercompare.services.document_loader import PDF

logger = structlog.get_logger(__name__)

PO_ATTACHMENT_NAME_HINTS: tuple[str, ...] = ("PO", "Purchase Order", "P0")


@dataclass
class FetchedDocument:
    """A PDF fetched from Odoo along with the record it belongs to."""
    reference: str
    filename: str
    content: bytes

    def as_source(self) -> SourceDocument:
        return SourceDocument(content=self.content, mime_type=PDF, filename=self.filename)


class _TimeoutTransport(xmlrpc.client.Transport):
    """XML-RPC transport whose connections time out."""

    def __init__(self, timeout: float, **kwargs: Any):
        super().__init__(**kwargs)
        self.timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self.timeout
        return connection


class _TimeoutSafeTransport(xmlrpc.client.SafeTransport):
    """HTTPS variant of _TimeoutTransport."""

    def __init__(self, timeout: float, **kwargs: Any):
        super().__init__(**kwargs)
        self.timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self.timeout
        return connection


def _safe_filename(name: str) -> str:
    return re.sub(r"[/\s]+", "_", name)


def or_domain(conditions: list[list[Any]]) -> list[Any]:
    """Combine Odoo domain leaves with OR in prefix notation.

    [a, b, c] -> ['|', a, '|', b, c]
    """
    if not conditions:
        return []
    domain: list[Any] = [conditions[-1]]
    for condition in reversed(conditions[:-1]):
        domain = ["|", condition, *domain]
    return domain


class OdooClient:
    """Minimal Odoo client for the sales order / purchase order pair."""

    def __init__(
        self,
        url: str,
        db: str,
        username: str,
        password: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url.rstrip("/")
        self.db = db
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = session or requests.Session()
        self._uid: Optional[int] = None
        self._http_logged_in = False

    @classmethod
    def from_settings(cls) -> "OdooClient":
        if not all([settings.odoo_url, settings.odoo_db, settings.odoo_username, settings.odoo_password]):
            raise OdooError("Odoo ERP connection details are not configured on the server.")
        return cls(
            url=settings.odoo_url,
            db=settings.odoo_db,
            username=settings.odoo_username,
            password=settings.odoo_password,
            timeout=settings.odoo_timeout,
        )

    # ------------------------------------------------------------------
    # XML-RPC
    # ------------------------------------------------------------------

    def _transport(self) -> xmlrpc.client.Transport:
        if self.url.startswith("https://"):
            return _TimeoutSafeTransport(self.timeout)
        return _TimeoutTransport(self.timeout)

    def _proxy(self, endpoint: str) -> xmlrpc.client.ServerProxy:
        return xmlrpc.client.ServerProxy(
            f"{self.url}/xmlrpc/2/{endpoint}", transport=self._transport(), allow_none=True
        )

    def authenticate(self) -> int:
        """Log in over XML-RPC and return the user id."""
        if self._uid is not None:
            return self._uid
        try:
            uid = self._proxy("common").authenticate(self.db, self.username, self.password, {})
        except (xmlrpc.client.Error, OSError) as exc:
            logger.error("odoo_auth_error", error=str(exc))
            raise OdooError("Odoo authentication failed.", detail=str(exc)) from exc
        if not isinstance(uid, int) or uid <= 0:
            logger.error("odoo_auth_rejected", db=self.db, username=self.username)
            raise OdooError("Odoo authentication failed. Check the server credentials for Odoo.")
        self._uid = uid
        logger.info("odoo_authenticated", uid=uid)
        return uid

    def search_read(
        self,
        model: str,
        domain: list[Any],
        fields: list[str],
        limit: int = 1,
        order: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        uid = self.authenticate()
        options: dict[str, Any] = {"fields": fields, "limit": limit}
        if order:
            options["order"] = order
        try:
            return self._proxy("object").execute_kw(
                self.db, uid, self.password, model, "search_read", [domain], options
            )
        except (xmlrpc.client.Error, OSError) as exc:
            logger.error("odoo_search_error", model=model, error=str(exc))
            raise OdooError(f"Error reading '{model}' records from Odoo.", detail=str(exc)) from exc

    # ------------------------------------------------------------------
    # HTTP session
    # ------------------------------------------------------------------

    def _http_login(self) -> None:
        if self._http_logged_in:
            return
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"db": self.db, "login": self.username, "password": self.password},
        }
        try:
            response = self.session.post(
                f"{self.url}/web/session/authenticate", json=payload, timeout=self.timeout
            )
            body = response.json() if response.ok else {}
        except (requests.RequestException, ValueError) as exc:
            logger.error("odoo_http_login_error", error=str(exc))
            raise OdooError("Odoo HTTP login failed. Could not establish a session.", detail=str(exc)) from exc

        if not body.get("result"):
            reason = (body.get("error") or {}).get("message") or f"status {response.status_code}"
            logger.error("odoo_http_login_rejected", reason=reason)
            raise OdooError("Odoo HTTP login failed. Could not establish a session.", detail=reason)
        self._http_logged_in = True

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def fetch_sales_order_pdf(self, so_name: str) -> FetchedDocument:
        """Find a sales order by name and download its PDF report."""
        sales = self.search_read("sale.order", [["name", "ilike", so_name]], ["id", "name"])
        if not sales:
            raise OdooError(f"Sales Order '{so_name}' not found in Odoo.")
        sale_id, sale_name = sales[0]["id"], sales[0]["name"]
        logger.info("odoo_sales_order_found", sale_id=sale_id, name=sale_name)

        self._http_login()
        report_url = f"{self.url}/report/pdf/sale.report_saleorder/{sale_id}"
        try:
            response = self.session.get(report_url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise OdooError(f"Failed to download PDF for Sales Order '{sale_name}'.", detail=str(exc)) from exc

        content_type = response.headers.get("Content-Type", "")
        if response.status_code != 200 or PDF not in content_type.lower() or not response.content:
            detail = f"status {response.status_code}, content-type {content_type or 'missing'}"
            logger.error("odoo_report_invalid", sale_id=sale_id, detail=detail)
            raise OdooError(
                f"Odoo did not return a valid PDF for Sales Order '{sale_name}'.", detail=detail
            )

        logger.info("odoo_sales_order_pdf_fetched", name=sale_name, size_bytes=len(response.content))
        return FetchedDocument(
            reference=sale_name,
            filename=_safe_filename(f"{sale_name}.pdf"),
            content=response.content,
        )

    def _main_attachment(self, purchase_order: dict[str, Any]) -> Optional[dict[str, Any]]:
        link = purchase_order.get("message_main_attachment_id")
        if not link:
            return None
        attachment_id = link[0] if isinstance(link, (list, tuple)) else link
        try:
            found = self.search_read(
                "ir.attachment",
                [["id", "=", attachment_id], ["mimetype", "=", PDF]],
                ["name", "datas", "mimetype"],
            )
        except OdooError as exc:
            logger.warning("odoo_main_attachment_failed", attachment_id=attachment_id, error=exc.detail)
            return None
        return found[0] if found and found[0].get("datas") else None

    def fetch_linked_purchase_order_pdf(self, so_reference: str) -> FetchedDocument:
        """Find the purchase order created from a sales order and return its PDF attachment.

        The main attachment is preferred; otherwise the newest PDF attachment
        whose name looks like a purchase order is used.
        """
        orders = self.search_read(
            "purchase.order",
            [["origin", "ilike", so_reference]],
            ["id", "name", "message_main_attachment_id"],
        )
        if not orders:
            raise OdooError(f"No Purchase Order found linked to Sales Order '{so_reference}'.")
        po = orders[0]
        po_id, po_name = po["id"], po["name"]
        logger.info("odoo_purchase_order_found", po_id=po_id, name=po_name)

        attachment = self._main_attachment(po)
        if attachment is None:
            name_filters = [["name", "ilike", hint] for hint in (*PO_ATTACHMENT_NAME_HINTS, po_name)]
            domain = [
                ["res_model", "=", "purchase.order"],
                ["res_id", "=", po_id],
                ["mimetype", "=", PDF],
                *or_domain(name_filters),
            ]
            found = self.search_read("ir.attachment", domain, ["name", "datas"], order="create_date desc")
            attachment = found[0] if found and found[0].get("datas") else None

        if attachment is None:
            raise OdooError(f"No PDF attachment found for Purchase Order '{po_name}'.")

        try:
            content = base64.b64decode(attachment["datas"])
        except (ValueError, TypeError) as exc:
            raise OdooError(f"The PDF attachment for Purchase Order '{po_name}' is corrupt.", detail=str(exc)) from exc
        if not content:
            raise OdooError(f"The PDF attachment for Purchase Order '{po_name}' is empty.")

        logger.info("odoo_purchase_order_pdf_fetched", name=po_name, size_bytes=len(content))
        return FetchedDocument(
            reference=po_name,
            filename=_safe_filename(attachment.get("name") or f"{po_name}.pdf"),
            content=content,
        )

    def fetch_order_pair(self, so_sequence: str) -> tuple[FetchedDocument, FetchedDocument]:
        """Return (purchase order PDF, sales order PDF) for a sales order sequence."""
        sales_order = self.fetch_sales_order_pdf(so_sequence.strip())
        purchase_order = self.fetch_linked_purchase_order_pdf(sales_order.reference)
        return purchase_order, sales_order
