"""Tests for the Odoo ERP document source."""

import base64
import xmlrpc.client

import pytest
import requests

from ordercompare.errors import OdooError
from ordercompare.services.odoo_client import OdooClient, or_domain

PDF_BYTES = b"%PDF-1.4 fake"


class FakeResponse:
    def __init__(self, status_code=200, json_body=None, content=b"", headers=None):
        self.status_code = status_code
        self._json = json_body
        self.content = content
        self.headers = headers or {}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


class FakeSession:
    def __init__(self, login_response=None, report_response=None):
        self.login_response = login_response or FakeResponse(json_body={"result": {"uid": 2}})
        self.report_response = report_response or FakeResponse(
            content=PDF_BYTES, headers={"Content-Type": "application/pdf"}
        )
        self.posts = []
        self.gets = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json))
        return self.login_response

    def get(self, url, timeout=None):
        self.gets.append(url)
        if isinstance(self.report_response, Exception):
            raise self.report_response
        return self.report_response


class FakeCommon:
    def __init__(self, uid=2):
        self.uid = uid

    def authenticate(self, db, username, password, context):
        if isinstance(self.uid, Exception):
            raise self.uid
        return self.uid


class FakeObject:
    """Answers search_read calls from a model -> list-of-responses table."""

    def __init__(self, answers):
        self.answers = {model: list(results) for model, results in answers.items()}
        self.calls = []

    def execute_kw(self, db, uid, password, model, method, args, options):
        self.calls.append((model, args[0], options))
        return self.answers[model].pop(0)


def _client(answers, uid=2, session=None):
    client = OdooClient("https://erp.example.com/", "prod", "bot", "secret", session=session or FakeSession())
    common = FakeCommon(uid)
    obj = FakeObject(answers)
    client._proxy = lambda endpoint: common if endpoint == "common" else obj
    return client, obj


SALE = {"id": 7, "name": "SO - 10372"}
PURCHASE = {"id": 11, "name": "P00042", "message_main_attachment_id": False}


class TestOrDomain:
    def test_empty(self):
        assert or_domain([]) == []

    def test_single(self):
        assert or_domain([["a", "=", 1]]) == [["a", "=", 1]]

    def test_three(self):
        a, b, c = ["a", "=", 1], ["b", "=", 2], ["c", "=", 3]
        assert or_domain([a, b, c]) == ["|", a, "|", b, c]


class TestOdooClient:
    def test_from_settings_requires_configuration(self, monkeypatch):
        from ordercompare.config import settings

        monkeypatch.setattr(settings, "odoo_url", "")
        with pytest.raises(OdooError, match="not configured"):
            OdooClient.from_settings()

    def test_xmlrpc_transport_times_out(self):
        client = OdooClient("https://erp.example.com", "prod", "bot", "secret", timeout=12.5)
        transport = client._transport()
        assert isinstance(transport, xmlrpc.client.SafeTransport)
        assert transport.make_connection("erp.example.com").timeout == 12.5

        plain = OdooClient("http://localhost:8069", "prod", "bot", "secret", timeout=3.0)._transport()
        assert not isinstance(plain, xmlrpc.client.SafeTransport)
        assert plain.make_connection("localhost:8069").timeout == 3.0

    def test_authentication_rejected(self):
        client, _ = _client({}, uid=False)
        with pytest.raises(OdooError, match="authentication failed"):
            client.authenticate()

    def test_authentication_transport_error(self):
        client, _ = _client({}, uid=ConnectionRefusedError("refused"))
        with pytest.raises(OdooError) as exc_info:
            client.authenticate()
        assert "refused" in exc_info.value.detail

    def test_search_fault(self):
        client, obj = _client({})

        def fault(*args):
            raise xmlrpc.client.Fault(1, "AccessError")

        obj.execute_kw = fault
        with pytest.raises(OdooError, match="sale.order"):
            client.search_read("sale.order", [], ["id"])

    def test_fetch_order_pair_with_main_attachment(self):
        purchase = {**PURCHASE, "message_main_attachment_id": [99, "P00042.pdf"]}
        attachment = {"name": "P00042.pdf", "datas": base64.b64encode(PDF_BYTES).decode()}
        session = FakeSession()
        client, obj = _client(
            {
                "sale.order": [[SALE]],
                "purchase.order": [[purchase]],
                "ir.attachment": [[attachment]],
            },
            session=session,
        )

        purchase_doc, sales_doc = client.fetch_order_pair("  SO - 10372 ")
        assert sales_doc.reference == "SO - 10372"
        assert sales_doc.filename == "SO_-_10372.pdf"
        assert sales_doc.content == PDF_BYTES
        assert purchase_doc.reference == "P00042"
        assert purchase_doc.content == PDF_BYTES
        assert session.gets == ["https://erp.example.com/report/pdf/sale.report_saleorder/7"]
        assert obj.calls[1][1] == [["origin", "ilike", "SO - 10372"]]

        source = purchase_doc.as_source()
        assert source.mime_type == "application/pdf"
        assert source.filename == "P00042.pdf"

    def test_attachment_search_fallback(self):
        attachment = {"name": "PO P00042.pdf", "datas": base64.b64encode(PDF_BYTES).decode()}
        client, obj = _client({
            "purchase.order": [[PURCHASE]],
            "ir.attachment": [[attachment]],
        })

        doc = client.fetch_linked_purchase_order_pdf("SO - 10372")
        assert doc.filename == "PO_P00042.pdf"
        model, domain, options = obj.calls[-1]
        assert model == "ir.attachment"
        assert ["res_id", "=", 11] in domain
        assert domain.count("|") == 3
        assert options["order"] == "create_date desc"

    def test_sales_order_not_found(self):
        client, _ = _client({"sale.order": [[]]})
        with pytest.raises(OdooError, match="not found"):
            client.fetch_sales_order_pdf("SO - 1")

    def test_report_not_pdf(self):
        session = FakeSession(
            report_response=FakeResponse(content=b"<html>login</html>", headers={"Content-Type": "text/html"})
        )
        client, _ = _client({"sale.order": [[SALE]]}, session=session)
        with pytest.raises(OdooError, match="valid PDF"):
            client.fetch_sales_order_pdf("SO - 10372")

    def test_report_download_error(self):
        session = FakeSession(report_response=requests.ConnectionError("reset"))
        client, _ = _client({"sale.order": [[SALE]]}, session=session)
        with pytest.raises(OdooError, match="Failed to download"):
            client.fetch_sales_order_pdf("SO - 10372")

    def test_http_login_rejected(self):
        session = FakeSession(
            login_response=FakeResponse(json_body={"error": {"message": "Access Denied"}})
        )
        client, _ = _client({"sale.order": [[SALE]]}, session=session)
        with pytest.raises(OdooError) as exc_info:
            client.fetch_sales_order_pdf("SO - 10372")
        assert exc_info.value.detail == "Access Denied"

    def test_no_linked_purchase_order(self):
        client, _ = _client({"purchase.order": [[]]})
        with pytest.raises(OdooError, match="No Purchase Order"):
            client.fetch_linked_purchase_order_pdf("SO - 10372")

    def test_no_attachment(self):
        client, _ = _client({"purchase.order": [[PURCHASE]], "ir.attachment": [[]]})
        with pytest.raises(OdooError, match="No PDF attachment"):
            client.fetch_linked_purchase_order_pdf("SO - 10372")
