"""HTTP-level tests for the API routers and error handling."""

import pytest
from fastapi.testclient import TestClient

from ordercompare.dependencies import get_extractor, get_odoo_client, get_summarizer
from ordercompare.errors import ExtractionError, OdooError
from ordercompare.main import app
from ordercompare.reconcile.engine import FALLBACK_SUMMARY
from ordercompare.schemas.common import OrderKind
from ordercompare.schemas.orders import OrderRecord, ProductLine
from ordercompare.services.excel_export import XLSX_MEDIA_TYPE
from ordercompare.services.odoo_client import FetchedDocument


def _record(kind: OrderKind, quantity: str = "10") -> OrderRecord:
    return OrderRecord(
        order_kind=kind,
        header_fields={"referenceNumber": "PO-1001", "grandTotal": "50.00"},
        line_items=(ProductLine(description="Widget", quantity=quantity, unit_price="5.00"),),
    )


class StubExtractor:
    def __init__(self, error: Exception | None = None, so_quantity: str = "10"):
        self.error = error
        self.so_quantity = so_quantity

    def extract(self, document_bytes, mime_hint, order_kind):
        if self.error is not None:
            raise self.error
        quantity = "10" if order_kind is OrderKind.PURCHASE else self.so_quantity
        return _record(order_kind, quantity)


class StubSummarizer:
    def summarize(self, purchase_order, sales_order):
        return "Quantities differ on Widget."


class StubOdoo:
    def fetch_order_pair(self, so_sequence):
        if so_sequence == "missing":
            raise OdooError(f"Sales Order '{so_sequence}' not found in Odoo.")
        return (
            FetchedDocument(reference="P00042", filename="P00042.pdf", content=b"%PDF po"),
            FetchedDocument(reference=so_sequence, filename="so.pdf", content=b"%PDF so"),
        )


@pytest.fixture
def client():
    app.dependency_overrides[get_extractor] = lambda: StubExtractor(so_quantity="12")
    app.dependency_overrides[get_summarizer] = lambda: StubSummarizer()
    app.dependency_overrides[get_odoo_client] = lambda: StubOdoo()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _uploads(po_name="po.pdf", so_name="so.csv", po_type="application/pdf", so_type="text/csv"):
    return {
        "purchase_order": (po_name, b"%PDF-1.4 po", po_type),
        "sales_order": (so_name, b"Description,Qty\nWidget,12\n", so_type),
    }


class TestSystemRoutes:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestCompareUploads:
    def test_compare(self, client):
        resp = client.post("/v1/compare", files=_uploads())
        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"] == "Quantities differ on Widget."
        assert body["discrepancies"] == []
        [line] = body["productLineItemComparisons"]
        assert line["status"] == "MISMATCH_QUANTITY"
        assert line["poQuantity"] == "10"
        assert line["soQuantity"] == "12"
        assert {m["matchQuality"] for m in body["matchedItems"]} == {"EXACT"}

    def test_extraction_error_is_422(self, client):
        app.dependency_overrides[get_extractor] = lambda: StubExtractor(
            error=ExtractionError("purchase order", "no readable content found")
        )
        resp = client.post("/v1/compare", files=_uploads())
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Could not extract the purchase order: no readable content found"

    def test_empty_upload_is_400(self, client):
        files = _uploads()
        files["sales_order"] = ("so.csv", b"", "text/csv")
        resp = client.post("/v1/compare", files=files)
        assert resp.status_code == 400

    def test_missing_file_is_422(self, client):
        resp = client.post("/v1/compare", files={"purchase_order": ("po.pdf", b"%PDF", "application/pdf")})
        assert resp.status_code == 422


class TestExtract:
    def test_extract(self, client):
        resp = client.post(
            "/v1/extract",
            params={"order_kind": "SALES"},
            files={"file": ("so.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["orderKind"] == "SALES"
        assert body["lineItems"][0]["unitPrice"] == "5.00"

    def test_unsupported_type_is_415(self, client):
        from ordercompare.errors import UnsupportedDocumentError

        app.dependency_overrides[get_extractor] = lambda: StubExtractor(
            error=UnsupportedDocumentError("sales order", "unsupported file type 'text/plain'")
        )
        resp = client.post(
            "/v1/extract",
            params={"order_kind": "SALES"},
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 415


class TestCompareRecords:
    def test_camel_case_records(self, client):
        payload = {
            "purchaseOrder": {
                "orderKind": "PURCHASE",
                "headerFields": {"totalTax": "20", "grandTotal": "120.00"},
                "lineItems": [{"description": "Widget", "quantity": "10"}],
            },
            "salesOrder": {
                "orderKind": "SALES",
                "headerFields": {"grandTotal": "120"},
                "lineItems": [{"description": "Widget", "quantity": "10"}],
            },
        }
        resp = client.post("/v1/compare/records", json=payload)
        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"] == FALLBACK_SUMMARY
        assert body["discrepancies"] == [
            {
                "field": "totalTax",
                "purchaseOrderValue": "20",
                "salesOrderValue": "Not present",
                "reason": "field missing on sales order",
            }
        ]
        assert body["productLineItemComparisons"][0]["status"] == "MATCHED"

    def test_summary_on_request(self, client):
        payload = {
            "purchaseOrder": {"orderKind": "PURCHASE"},
            "salesOrder": {"orderKind": "SALES"},
            "summarize": True,
        }
        resp = client.post("/v1/compare/records", json=payload)
        assert resp.json()["summary"] == "Quantities differ on Widget."

    def test_wrong_kind_is_422(self, client):
        payload = {"purchaseOrder": {"orderKind": "SALES"}, "salesOrder": {"orderKind": "SALES"}}
        resp = client.post("/v1/compare/records", json=payload)
        assert resp.status_code == 422
        assert "Expected a purchase order" in resp.json()["detail"]


class TestCompareOdoo:
    def test_compare_from_odoo(self, client):
        resp = client.post("/v1/compare/odoo", json={"soSequence": "SO - 10372"})
        assert resp.status_code == 200
        assert resp.json()["productLineItemComparisons"][0]["status"] == "MISMATCH_QUANTITY"

    def test_odoo_error_is_502(self, client):
        resp = client.post("/v1/compare/odoo", json={"soSequence": "missing"})
        assert resp.status_code == 502
        assert "not found" in resp.json()["detail"]


class TestExport:
    def test_excel_download(self, client):
        report = {
            "summary": "All good.",
            "matchedItems": [{"field": "buyer", "value": "ACME", "matchQuality": "EXACT"}],
            "discrepancies": [],
            "productLineItemComparisons": [],
        }
        resp = client.post("/v1/export/excel", json=report)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == XLSX_MEDIA_TYPE
        assert "comparison_report.xlsx" in resp.headers["content-disposition"]
        assert resp.content[:2] == b"PK"
