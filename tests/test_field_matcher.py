"""Tests for header field matching."""

from ordercompare.reconcile.fields import NOT_PRESENT, match_fields
from ordercompare.schemas.common import MatchQuality, OrderKind
from ordercompare.schemas.orders import OrderRecord


def _make_po(**fields: str) -> OrderRecord:
    return OrderRecord(order_kind=OrderKind.PURCHASE, header_fields=fields)


def _make_so(**fields: str) -> OrderRecord:
    return OrderRecord(order_kind=OrderKind.SALES, header_fields=fields)


def _by_field(items):
    return {item.field: item for item in items}


class TestFieldMatcher:
    def test_identical_fields_match_exactly(self):
        po = _make_po(buyer="ACME Corp", referenceNumber="PO-1001")
        so = _make_so(buyer="ACME Corp", referenceNumber="PO-1001")

        matched, discrepancies = match_fields(po, so)
        assert discrepancies == []
        assert {m.field for m in matched} == {"buyer", "referenceNumber"}
        assert all(m.match_quality == MatchQuality.EXACT for m in matched)

    def test_numeric_format_difference_is_exact(self):
        """'100.00' and '100' are the same total."""
        matched, discrepancies = match_fields(_make_po(grandTotal="100.00"), _make_so(grandTotal="100"))
        assert discrepancies == []
        assert matched[0].match_quality == MatchQuality.EXACT
        assert matched[0].value == "100.00"

    def test_case_and_whitespace_is_exact(self):
        matched, _ = match_fields(_make_po(seller="Globex  Inc"), _make_so(seller="GLOBEX INC"))
        assert matched[0].match_quality == MatchQuality.EXACT

    def test_within_tolerance_is_fuzzy(self):
        matched, discrepancies = match_fields(
            _make_po(grandTotal="10000.00"), _make_so(grandTotal="10000.50")
        )
        assert discrepancies == []
        assert matched[0].match_quality == MatchQuality.FUZZY

    def test_cent_difference_is_discrepancy(self):
        matched, discrepancies = match_fields(_make_po(grandTotal="100.00"), _make_so(grandTotal="100.01"))
        assert matched == []
        assert len(discrepancies) == 1
        d = discrepancies[0]
        assert d.purchase_order_value == "100.00"
        assert d.sales_order_value == "100.01"
        assert "differ" in d.reason

    def test_field_missing_on_sales_order(self):
        """totalTax on the PO only is reported once, SO marked not present."""
        matched, discrepancies = match_fields(_make_po(totalTax="20"), _make_so())
        assert matched == []
        assert len(discrepancies) == 1
        d = discrepancies[0]
        assert d.field == "totalTax"
        assert d.purchase_order_value == "20"
        assert d.sales_order_value == NOT_PRESENT
        assert d.reason == "field missing on sales order"

    def test_field_missing_on_purchase_order(self):
        _, discrepancies = match_fields(_make_po(), _make_so(totalDiscount="5"))
        d = discrepancies[0]
        assert d.purchase_order_value == NOT_PRESENT
        assert d.sales_order_value == "5"

    def test_blank_value_is_not_present(self):
        _, discrepancies = match_fields(_make_po(date="2024-03-01"), _make_so(date="   "))
        assert discrepancies[0].sales_order_value == NOT_PRESENT

    def test_blank_on_both_sides_matches(self):
        matched, discrepancies = match_fields(_make_po(currency=""), _make_so(currency=""))
        assert discrepancies == []
        assert matched[0].field == "currency"

    def test_absent_fields_not_reported(self):
        matched, discrepancies = match_fields(_make_po(), _make_so())
        assert matched == [] and discrepancies == []

    def test_blank_on_one_side_missing_on_other_is_reported(self):
        matched, discrepancies = match_fields(_make_po(totalTax=""), _make_so())
        assert matched == []
        [d] = discrepancies
        assert d.field == "totalTax"
        assert d.purchase_order_value == NOT_PRESENT
        assert d.sales_order_value == NOT_PRESENT
        assert d.reason == "value blank on purchase order, field missing on sales order"

    def test_missing_on_po_blank_on_so_is_reported(self):
        _, discrepancies = match_fields(_make_po(), _make_so(currency="  "))
        assert discrepancies[0].reason == "value blank on sales order, field missing on purchase order"

    def test_units_differ(self):
        matched, discrepancies = match_fields(
            _make_po(paymentTerms="30 days"), _make_so(paymentTerms="30 months")
        )
        assert matched == []
        assert discrepancies[0].reason == "unit differs (day vs month)"

    def test_label_variants_use_po_spelling(self):
        po = OrderRecord(order_kind=OrderKind.PURCHASE, header_fields={"Total Tax": "20"})
        so = OrderRecord(order_kind=OrderKind.SALES, header_fields={"total_tax": "20.00"})

        matched, discrepancies = match_fields(po, so)
        assert discrepancies == []
        assert matched[0].field == "Total Tax"

    def test_currency_missing_on_one_side(self):
        _, discrepancies = match_fields(_make_po(grandTotal="$500"), _make_so(grandTotal="500"))
        assert discrepancies[0].reason == "one side missing currency unit"

    def test_output_order_po_then_so_only(self):
        po = _make_po(date="2024-03-01", buyer="ACME")
        so = _make_so(seller="Globex", buyer="ACME", date="2024-03-02")

        matched, discrepancies = match_fields(po, so)
        assert [d.field for d in discrepancies] == ["date", "seller"]
        assert [m.field for m in matched] == ["buyer"]

    def test_every_field_reported_exactly_once(self):
        po = _make_po(date="2024-03-01", buyer="ACME", totalTax="20", grandTotal="120.00")
        so = _make_so(date="2024-03-01", buyer="Acme Ltd", grandTotal="120", paymentTerms="Net 30")

        matched, discrepancies = match_fields(po, so)
        reported = [m.field for m in matched] + [d.field for d in discrepancies]
        assert sorted(reported) == sorted(["date", "buyer", "totalTax", "grandTotal", "paymentTerms"])
        assert len(reported) == len(set(reported))

    def test_records_not_mutated(self):
        po = _make_po(totalTax="20")
        so = _make_so()
        before = (po.model_dump(), so.model_dump())
        match_fields(po, so)
        assert (po.model_dump(), so.model_dump()) == before
