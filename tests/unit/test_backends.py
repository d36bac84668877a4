# =============================================================================
# tests/unit/test_backends.py
# Unit Tests for the remote storage backends
# =============================================================================

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import requests

from pos_core.backends import (
    FirebaseBackend,
    LocalBackend,
    NeonBackend,
    SupabaseBackend,
    build_backends,
)
from pos_core.backends.base import camelize_keys, snakify_keys
from pos_core.backends.firebase_backend import decode_fields, decode_value, encode_value
from pos_core.errors import BackendError, ConnectivityError, ValidationError
from pos_core.models import BackendKind, SaleTransaction, TransactionType


def _response(body, status_code=200):
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.json.return_value = body
    return response


def _session(*responses):
    session = MagicMock()
    session.request.side_effect = list(responses)
    return session


class APIError(Exception):
    """Shape of the postgrest error: code and message attributes"""

    def __init__(self, message, code):
        super().__init__(message)
        self.message = message
        self.code = code


# =============================================================================
# SUPABASE
# =============================================================================

def _supabase_table(*batches):
    table = MagicMock()
    query = table.select.return_value
    query.order.return_value = query
    query.range.return_value.execute.side_effect = [MagicMock(data=rows) for rows in batches]
    return table


class TestSupabaseBackend:

    def test_health_check_queries_users(self, mock_supabase):
        SupabaseBackend(client=mock_supabase).health_check()
        mock_supabase.table.assert_called_with("users")

    def test_unconfigured_client_is_connectivity_error(self):
        with pytest.raises(ConnectivityError):
            SupabaseBackend().health_check()

    def test_list_products_pages_past_batch_size(self):
        rows = [
            {"id": i, "name": f"Item {i}", "price": "10", "category": "Snacks", "stock": 5}
            for i in range(3)
        ]
        client = MagicMock()
        client.table.return_value = _supabase_table(rows[:2], rows[2:])
        backend = SupabaseBackend(client=client)
        backend.BATCH_SIZE = 2

        products = backend.list_products()

        assert [p.id for p in products] == ["0", "1", "2"]
        ranges = [c.args for c in client.table.return_value.select.return_value.range.call_args_list]
        assert ranges == [(0, 1), (2, 3)]

    def test_malformed_rows_are_skipped(self):
        client = MagicMock()
        client.table.return_value = _supabase_table([
            {"id": 1, "name": "Coca Cola", "price": "15", "category": "Beverages"},
            {"id": 2, "name": "", "price": "15", "category": "Beverages"},
        ])

        products = SupabaseBackend(client=client).list_products()
        assert [p.name for p in products] == ["Coca Cola"]

    def test_list_transactions_merges_tables_newest_first(self):
        sales = _supabase_table([{
            "id": 10,
            "items": [{"product_id": "p-1", "product_name": "Coca Cola", "quantity": 1, "price": "15"}],
            "amount_paid": "20",
            "worker_id": "w-1",
            "worker_email": "worker@demo.com",
            "timestamp": "2024-06-10T09:00:00",
        }])
        expenses = _supabase_table([{
            "id": 11,
            "description": "Ice",
            "amount": "120",
            "category": "Supplies",
            "worker_id": "w-1",
            "worker_email": "worker@demo.com",
            "timestamp": "2024-06-10T10:00:00",
        }])
        client = MagicMock()
        client.table.side_effect = lambda name: {"sales": sales, "expenses": expenses}[name]

        transactions = SupabaseBackend(client=client).list_transactions()

        assert [t.type for t in transactions] == [TransactionType.EXPENSE, TransactionType.SALE]
        assert transactions[1].change == Decimal("5")

    def test_create_product_inserts_draft(self, mock_supabase, product_draft):
        mock_supabase.table.return_value.insert.return_value.execute.return_value = MagicMock(
            data=[{**product_draft.to_dict(), "id": 7, "created_at": "2024-06-10T14:30:00"}]
        )

        product = SupabaseBackend(client=mock_supabase).create_product(product_draft)

        assert product.id == "7"
        mock_supabase.table.assert_called_with("products")
        mock_supabase.table.return_value.insert.assert_called_once_with(product_draft.to_dict())

    def test_create_expense_goes_to_expenses_table(self, mock_supabase, expense_draft):
        row = {**expense_draft.to_dict(), "id": 3, "timestamp": "2024-06-10T14:30:00"}
        row.pop("type")
        mock_supabase.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[row])

        expense = SupabaseBackend(client=mock_supabase).create_transaction(expense_draft)

        assert expense.type is TransactionType.EXPENSE
        mock_supabase.table.assert_called_with("expenses")
        inserted = mock_supabase.table.return_value.insert.call_args.args[0]
        assert "type" not in inserted

    def test_empty_insert_response_is_backend_error(self, mock_supabase, product_draft):
        with pytest.raises(BackendError):
            SupabaseBackend(client=mock_supabase).create_product(product_draft)

    @pytest.mark.parametrize("error, expected", [
        (APIError("duplicate key value", "23505"), ValidationError),
        (APIError("invalid input syntax", "22P02"), ValidationError),
        (APIError("permission denied for table products", "42501"), ConnectivityError),
        (Exception("Failed to fetch"), ConnectivityError),
        (APIError("function raised", "P0001"), BackendError),
    ])
    def test_error_translation(self, mock_supabase, product_draft, error, expected):
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = error

        with pytest.raises(expected):
            SupabaseBackend(client=mock_supabase).create_product(product_draft)


# =============================================================================
# FIREBASE
# =============================================================================

DOC_PREFIX = "projects/charnoks-test/databases/(default)/documents"


class TestFirestoreCodec:

    @pytest.mark.parametrize("value, encoded", [
        (None, {"nullValue": None}),
        (True, {"booleanValue": True}),
        (100, {"integerValue": "100"}),
        (Decimal("15.50"), {"doubleValue": 15.5}),
        ("Coca Cola", {"stringValue": "Coca Cola"}),
        (
            datetime(2024, 6, 10, 6, 30, tzinfo=timezone.utc),
            {"timestampValue": "2024-06-10T06:30:00.000000Z"},
        ),
    ])
    def test_encode_scalars(self, value, encoded):
        assert encode_value(value) == encoded

    def test_encode_nested(self):
        encoded = encode_value({"items": [{"quantity": 2}]})
        item = encoded["mapValue"]["fields"]["items"]["arrayValue"]["values"][0]
        assert item == {"mapValue": {"fields": {"quantity": {"integerValue": "2"}}}}

    def test_decode_double_as_decimal(self):
        assert decode_value({"doubleValue": 15.5}) == Decimal("15.5")
        assert decode_value({"doubleValue": 0.1}) == Decimal("0.1")

    def test_decode_fields(self):
        fields = {
            "stock": {"integerValue": "100"},
            "tags": {"arrayValue": {}},
            "meta": {"mapValue": {"fields": {"ok": {"booleanValue": True}}}},
        }
        assert decode_fields(fields) == {"stock": 100, "tags": [], "meta": {"ok": True}}

    @pytest.mark.parametrize("value", [
        {"geoPointValue": {"latitude": 14.6, "longitude": 121.0}},
        {"referenceValue": "projects/p/databases/(default)/documents/products/a"},
        {"bytesValue": "AAE="},
        {"integerValue": "lots"},
    ])
    def test_unusable_values_are_rejected(self, value):
        with pytest.raises(ValidationError):
            decode_value(value)


def _product_doc(doc_id, **fields):
    base = {
        "name": {"stringValue": "Coca Cola"},
        "price": {"doubleValue": 15},
        "category": {"stringValue": "Beverages"},
        "stock": {"integerValue": "100"},
        "imageUrl": {"stringValue": "coke.png"},
    }
    base.update(fields)
    return {
        "name": f"{DOC_PREFIX}/products/{doc_id}",
        "fields": base,
        "createTime": "2024-06-10T06:30:00.000000Z",
        "updateTime": "2024-06-10T06:30:00.000000Z",
    }


class TestFirebaseBackend:

    def test_list_products_follows_page_token(self):
        session = _session(
            _response({"documents": [_product_doc("a")], "nextPageToken": "page-2"}),
            _response({"documents": [_product_doc("b")]}),
        )
        backend = FirebaseBackend("charnoks-test", api_key="web-key", session=session)

        products = backend.list_products()

        assert [p.id for p in products] == ["a", "b"]
        assert products[0].price == Decimal("15")
        assert products[0].image_url == "coke.png"
        second_params = session.request.call_args_list[1].kwargs["params"]
        assert second_params["pageToken"] == "page-2"
        assert second_params["key"] == "web-key"

    def test_malformed_document_is_skipped(self):
        session = _session(_response({"documents": [
            _product_doc("good"),
            _product_doc("bad", price={"stringValue": "fifteen"}),
        ]}))

        products = FirebaseBackend("charnoks-test", session=session).list_products()
        assert [p.id for p in products] == ["good"]

    @pytest.mark.parametrize("field", [
        {"location": {"geoPointValue": {"latitude": 14.6, "longitude": 121.0}}},
        {"stock": {"integerValue": "many"}},
    ])
    def test_document_with_unusable_value_is_skipped(self, field):
        session = _session(_response({"documents": [
            _product_doc("good"),
            _product_doc("bad", **field),
        ]}))

        products = FirebaseBackend("charnoks-test", session=session).list_products()
        assert [p.id for p in products] == ["good"]

    def test_untyped_sale_uses_create_time(self):
        doc = {
            "name": f"{DOC_PREFIX}/sales/s-1",
            "createTime": "2024-06-10T06:30:00Z",
            "fields": {
                "items": {"arrayValue": {"values": [{"mapValue": {"fields": {
                    "productId": {"stringValue": "p-1"},
                    "productName": {"stringValue": "Coca Cola"},
                    "quantity": {"integerValue": "2"},
                    "price": {"doubleValue": 15},
                    "total": {"doubleValue": 30},
                }}}]}},
                "amountPaid": {"doubleValue": 50},
                "workerId": {"stringValue": "w-1"},
                "workerEmail": {"stringValue": "worker@demo.com"},
            },
        }
        session = _session(_response({"documents": [doc]}))

        (sale,) = FirebaseBackend("charnoks-test", session=session).list_transactions()

        assert isinstance(sale, SaleTransaction)
        assert sale.id == "s-1"
        assert sale.change == Decimal("20")
        assert sale.timestamp == datetime(2024, 6, 10, 6, 30, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

    def test_create_transaction_sends_typed_fields(self, sale_draft, frozen_clock):
        session = _session(_response({"name": f"{DOC_PREFIX}/sales/new-sale", "fields": {}}))
        backend = FirebaseBackend("charnoks-test", session=session, clock=frozen_clock)

        sale = backend.create_transaction(sale_draft)

        assert sale.id == "new-sale"
        assert sale.timestamp == frozen_clock()
        call = session.request.call_args.kwargs
        assert call["method"] == "POST"
        assert call["url"].endswith("/documents/sales")
        fields = call["json"]["fields"]
        assert fields["totalAmount"] == {"doubleValue": 55.0}
        assert fields["type"] == {"stringValue": "sale"}
        assert "timestampValue" in fields["timestamp"]
        line = fields["items"]["arrayValue"]["values"][0]["mapValue"]["fields"]
        assert line["productId"] == {"stringValue": "p-1"}
        assert line["quantity"] == {"integerValue": "2"}

    def test_permission_denied_is_connectivity_error(self):
        session = _session(_response({"error": {"status": "PERMISSION_DENIED"}}, status_code=403))

        with pytest.raises(ConnectivityError):
            FirebaseBackend("charnoks-test", session=session).health_check()


# =============================================================================
# NEON / HTTP STATUS MAPPING
# =============================================================================

class TestNeonBackend:

    def test_health_check_healthy(self):
        session = _session(_response({"status": "healthy"}))
        NeonBackend("https://neon.example.com/", session=session).health_check()
        assert session.request.call_args.kwargs["url"] == "https://neon.example.com/api/health"

    def test_health_check_degraded(self):
        session = _session(_response({"status": "unhealthy", "error": "db down"}))
        with pytest.raises(ConnectivityError, match="db down"):
            NeonBackend("https://neon.example.com", session=session).health_check()

    def test_list_transactions_tags_and_orders(self):
        sales = [{
            "id": 5,
            "items": [{"productId": "p-1", "productName": "Coca Cola", "quantity": 1, "price": "15"}],
            "totalAmount": "15",
            "amountPaid": "15",
            "workerId": "w-1",
            "workerEmail": "worker@demo.com",
            "createdAt": "2024-06-10T08:00:00",
        }]
        expenses = [{
            "id": 6,
            "description": "Ice",
            "amount": "120.00",
            "category": "Supplies",
            "workerId": "w-1",
            "workerEmail": "worker@demo.com",
            "timestamp": "2024-06-10T12:00:00",
        }]
        session = MagicMock()
        session.request.side_effect = lambda **kw: _response(sales if kw["url"].endswith("sales") else expenses)

        transactions = NeonBackend("https://neon.example.com", session=session).list_transactions()

        assert [(t.id, t.type) for t in transactions] == [
            ("6", TransactionType.EXPENSE),
            ("5", TransactionType.SALE),
        ]
        assert transactions[1].timestamp == datetime(2024, 6, 10, 8, 0)

    def test_create_product_sends_camel_case(self, product_draft):
        session = _session(_response({
            "id": 9,
            "name": "Coca Cola",
            "price": "15.00",
            "category": "Beverages",
            "stock": 100,
            "isActive": True,
            "createdAt": "2024-06-10T14:30:00",
        }))

        product = NeonBackend("https://neon.example.com", session=session).create_product(product_draft)

        assert product.id == "9"
        posted = session.request.call_args.kwargs["json"]
        assert "isActive" in posted and "imageUrl" in posted

    def test_non_list_body_reads_as_empty(self):
        session = _session(_response({"error": "oops"}))
        assert NeonBackend("https://neon.example.com", session=session).list_products() == []

    @pytest.mark.parametrize("status, expected", [
        (401, ConnectivityError),
        (503, ConnectivityError),
        (409, ValidationError),
        (422, ValidationError),
        (404, BackendError),
    ])
    def test_status_mapping(self, status, expected):
        session = _session(_response({"error": "nope"}, status_code=status))
        with pytest.raises(expected):
            NeonBackend("https://neon.example.com", session=session).list_products()

    @pytest.mark.parametrize("error", [
        requests.exceptions.Timeout("read timed out"),
        requests.exceptions.ConnectionError("connection refused"),
    ])
    def test_transport_failures(self, error):
        session = MagicMock()
        session.request.side_effect = error
        with pytest.raises(ConnectivityError):
            NeonBackend("https://neon.example.com", session=session).list_products()


# =============================================================================
# KEY MAPPING / REGISTRY
# =============================================================================

def test_key_mapping_recurses():
    data = {"total_amount": "5", "items": [{"product_id": "p-1"}]}
    assert camelize_keys(data) == {"totalAmount": "5", "items": [{"productId": "p-1"}]}
    assert snakify_keys(camelize_keys(data)) == data


class TestRegistry:

    def test_builds_configured_backends(self, storage_settings, local_store):
        backends = build_backends(storage_settings, local_store, session=MagicMock())

        assert list(backends) == [
            BackendKind.SUPABASE, BackendKind.FIREBASE, BackendKind.NEON, BackendKind.LOCAL,
        ]
        assert isinstance(backends[BackendKind.LOCAL], LocalBackend)

    def test_unconfigured_remotes_left_out(self, local_store):
        from pos_core.config import StorageSettings

        backends = build_backends(StorageSettings(neon_api_url="https://neon.example.com"), local_store)
        assert list(backends) == [BackendKind.NEON, BackendKind.LOCAL]

    def test_local_backend_round_trip(self, local_store, product_draft):
        backend = LocalBackend(local_store)
        backend.health_check()
        created = backend.create_product(product_draft)
        assert backend.list_products() == [created]
