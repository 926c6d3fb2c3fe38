"""Tests for platform syncs and the sync dispatcher."""

from datetime import UTC, datetime
from types import SimpleNamespace

import httpx
import pytest
from conftest import add_tenant

from ops_hub.integrations import (
    PLATFORM_SYNCS,
    MissingCredentialsError,
    Platform,
    PlatformAPIError,
    ReauthorizationRequired,
    SyncDispatcher,
    connect_integration,
    has_marker,
    marker,
)
from ops_hub.integrations.base import PlatformSync, parse_date, to_cents
from ops_hub.integrations.stripe import StripeSync
from ops_hub.models import Integration, InvoiceStatus, Task, TransactionType


def json_response(payload, status_code=200):
    return httpx.Response(status_code, json=payload)


def make_dispatcher(storage, vault, handler) -> tuple[SyncDispatcher, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SyncDispatcher(storage, vault, client), client


class TestMarkers:
    """Tests for marker tokens."""

    def test_marker_format(self):
        assert marker("Stripe", "ch_123") == "Stripe:ch_123"
        assert marker("QBInvoice", 42) == "QBInvoice:42"

    def test_has_marker_matches_whole_token(self):
        assert has_marker("Synced from Asana:12 - notes", "Asana:12")
        assert has_marker("Stripe payment - Coffee (Stripe:ch_1)", "Stripe:ch_1")
        assert has_marker("Asana:12", "Asana:12")

    def test_has_marker_rejects_prefix_of_longer_id(self):
        assert not has_marker("Synced from Asana:123 - notes", "Asana:12")
        assert not has_marker("(Stripe:ch_10)", "Stripe:ch_1")
        assert not has_marker("(XAsana:12)", "Asana:12")

    def test_has_marker_empty_text(self):
        assert not has_marker(None, "Asana:1")
        assert not has_marker("", "Asana:1")

    def test_legacy_reference_only_matches_unmarked_rows(self):
        legacy_row = SimpleNamespace(description="PayPal TX1 - Jane Doe", source="paypal")
        marked_row = SimpleNamespace(description="PayPal TX1 (PayPal:TX9)", source="paypal")
        other_source = SimpleNamespace(description="PayPal TX1 - Jane Doe", source="manual")

        assert PlatformSync._already_imported(
            [legacy_row], "PayPal:TX1", source="paypal", legacy="TX1"
        )
        assert not PlatformSync._already_imported([legacy_row], "PayPal:TX1", source="paypal")
        assert not PlatformSync._already_imported(
            [marked_row], "PayPal:TX1", source="paypal", legacy="TX1"
        )
        assert not PlatformSync._already_imported(
            [other_source], "PayPal:TX1", source="paypal", legacy="TX1"
        )
        assert not PlatformSync._already_imported(
            [legacy_row], "PayPal:TX", source="paypal", legacy="TX"
        )


class TestConversions:
    def test_to_cents(self):
        assert to_cents("150.50") == 15050
        assert to_cents(99.99) == 9999
        assert to_cents("0.125") == 13
        assert to_cents(-12.5) == -1250
        assert to_cents(None) == 0

    def test_parse_date(self):
        assert parse_date("2024-01-15") == datetime(2024, 1, 15, tzinfo=UTC)
        assert parse_date("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
        assert parse_date("2024-01-15T10:30:00+0000") == datetime(
            2024, 1, 15, 10, 30, tzinfo=UTC
        )
        assert parse_date(None) is None
        assert parse_date("not a date") is None


class TestDispatcher:
    """Tests for SyncDispatcher."""

    def test_every_platform_has_a_sync(self, storage, vault):
        dispatcher, _ = make_dispatcher(storage, vault, lambda request: json_response({}))

        assert set(dispatcher.platforms) == set(Platform)
        assert set(PLATFORM_SYNCS) == set(Platform)

    def test_missing_platform_fails_construction(self, storage, vault):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: json_response({})))
        syncs = {Platform.STRIPE: StripeSync(storage, vault, client)}

        with pytest.raises(ValueError, match="quickbooks"):
            SyncDispatcher(storage, vault, client, syncs=syncs)

    @pytest.mark.asyncio
    async def test_unknown_platform_is_unsuccessful(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, lambda r: json_response({}))
        integration = Integration(user_id="u", platform="freshbooks", credentials="x:y")

        result = await dispatcher.sync(integration)

        assert result.success is False
        assert result.message == "Unsupported platform"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_platform_lookup_is_case_insensitive(self, storage, vault):
        def handler(request):
            return json_response({"data": []})

        dispatcher, client = make_dispatcher(storage, vault, handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )
        integration.platform = "Stripe"

        result = await dispatcher.sync(integration)

        assert result.success is True
        await client.aclose()


class TestCredentials:
    """Tests for credential loading shared by all syncs."""

    @pytest.mark.asyncio
    async def test_no_credentials(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, lambda r: json_response({}))
        integration = Integration(user_id="u", platform="stripe")

        with pytest.raises(MissingCredentialsError):
            await dispatcher.sync(integration)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_fields_named_without_values(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, lambda r: json_response({}))
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "paypal", {"clientId": "super-secret-id"}
        )

        with pytest.raises(MissingCredentialsError) as exc_info:
            await dispatcher.sync(integration)

        message = str(exc_info.value)
        assert "clientSecret" in message
        assert "super-secret-id" not in message
        await client.aclose()

    @pytest.mark.asyncio
    async def test_undecryptable_credentials(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, lambda r: json_response({}))
        integration = Integration(user_id="u", platform="stripe", credentials="zz:zz")

        with pytest.raises(MissingCredentialsError):
            await dispatcher.sync(integration)
        await client.aclose()


class TestConnectIntegration:
    @pytest.mark.asyncio
    async def test_stores_encrypted_credentials(self, storage, vault):
        tenant = await add_tenant(storage)

        integration = await connect_integration(
            storage, vault, tenant.id, "Stripe", {"apiKey": "sk_live_secret"}
        )

        assert integration.platform == "stripe"
        assert integration.is_connected is True
        assert "sk_live_secret" not in integration.credentials
        assert vault.decrypt_credentials(integration.credentials) == {"apiKey": "sk_live_secret"}

    @pytest.mark.asyncio
    async def test_reconnect_replaces_credentials(self, storage, vault):
        tenant = await add_tenant(storage)
        first = await connect_integration(storage, vault, tenant.id, "asana", {"accessToken": "a"})
        await storage.update_integration(first.id, is_connected=False)

        second = await connect_integration(
            storage, vault, tenant.id, "asana", {"accessToken": "b"}
        )

        assert second.id == first.id
        assert second.is_connected is True
        assert vault.decrypt_credentials(second.credentials) == {"accessToken": "b"}
        assert len(await storage.get_integrations(tenant.id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_platform_rejected(self, storage, vault):
        with pytest.raises(ValueError):
            await connect_integration(storage, vault, "u", "freshbooks", {})


class TestStripeSync:
    CHARGES = {
        "data": [
            {
                "id": "ch_1",
                "status": "succeeded",
                "amount": 2500,
                "description": "Coffee beans",
                "created": 1704067200,
            },
            {"id": "ch_2", "status": "failed", "amount": 9900, "created": 1704067200},
            {"id": "ch_3", "status": "succeeded", "amount": 1000, "created": 1704153600},
        ]
    }

    def handler(self, request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer sk_test"
        if request.url.path == "/v1/charges":
            return json_response(self.CHARGES)
        if request.url.path == "/v1/customers":
            return json_response({"data": [{"id": "cus_1"}, {"id": "cus_2"}]})
        return json_response({}, status_code=404)

    @pytest.mark.asyncio
    async def test_imports_succeeded_charges_once(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )

        first = await dispatcher.sync(integration)
        second = await dispatcher.sync(integration)

        assert first.success is True
        assert first.counts == {"charges": 3, "imported": 2, "customers": 2}
        assert second.counts["imported"] == 0

        transactions = await storage.get_transactions(tenant.id)
        assert len(transactions) == 2
        assert all(t.source == "stripe" for t in transactions)
        assert all(t.type == TransactionType.PAYMENT for t in transactions)
        assert sorted(t.amount for t in transactions) == [1000, 2500]
        coffee = next(t for t in transactions if t.amount == 2500)
        assert has_marker(coffee.description, "Stripe:ch_1")
        assert coffee.date == datetime(2024, 1, 1, tzinfo=UTC)

        stored = await storage.get_integration(integration.id)
        assert stored.last_synced is not None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_manual_rows_with_same_marker_do_not_block_import(self, storage, vault):
        from ops_hub.models import Transaction

        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        await storage.create_transaction(
            Transaction(
                user_id=tenant.id,
                type=TransactionType.PAYMENT,
                amount=2500,
                description="Copied from Stripe:ch_1",
                source="manual",
            )
        )
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )

        result = await dispatcher.sync(integration)

        assert result.counts["imported"] == 2
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rows_from_before_markers_are_recognised(self, storage, vault):
        from ops_hub.models import Transaction

        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        await storage.create_transaction(
            Transaction(
                user_id=tenant.id,
                type=TransactionType.PAYMENT,
                amount=2500,
                description="Stripe payment ch_1 - Payment received",
                source="stripe",
            )
        )
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )

        result = await dispatcher.sync(integration)

        assert result.counts["imported"] == 1
        transactions = await storage.get_transactions(tenant.id)
        assert len([t for t in transactions if has_marker(t.description, "ch_1")]) == 1
        assert any(has_marker(t.description, "Stripe:ch_3") for t in transactions)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_body_raises_api_error(self, storage, vault):
        dispatcher, client = make_dispatcher(
            storage,
            vault,
            lambda r: httpx.Response(200, text="<html>maintenance</html>"),
        )
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )

        with pytest.raises(PlatformAPIError, match="non-JSON") as exc_info:
            await dispatcher.sync(integration)

        assert exc_info.value.status_code == 200
        await client.aclose()

    @pytest.mark.asyncio
    async def test_customers_failure_is_not_fatal(self, storage, vault):
        def handler(request):
            if request.url.path == "/v1/charges":
                return json_response({"data": []})
            return json_response({"error": "nope"}, status_code=500)

        dispatcher, client = make_dispatcher(storage, vault, handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )

        result = await dispatcher.sync(integration)

        assert result.success is True
        assert result.counts["customers"] == 0
        await client.aclose()

    @pytest.mark.asyncio
    async def test_charges_failure_raises(self, storage, vault):
        dispatcher, client = make_dispatcher(
            storage, vault, lambda r: json_response({"error": "bad key"}, status_code=401)
        )
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )

        with pytest.raises(PlatformAPIError) as exc_info:
            await dispatcher.sync(integration)

        assert exc_info.value.status_code == 401
        assert exc_info.value.platform == Platform.STRIPE
        stored = await storage.get_integration(integration.id)
        assert stored.last_synced is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_network_error_raises(self, storage, vault):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        dispatcher, client = make_dispatcher(storage, vault, handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "stripe", {"apiKey": "sk_test"}
        )

        with pytest.raises(PlatformAPIError):
            await dispatcher.sync(integration)
        await client.aclose()


class TestQuickBooksSync:
    CREDENTIALS = {
        "clientId": "qb-client",
        "clientSecret": "qb-secret",
        "realmId": "9130",
        "refreshToken": "refresh-1",
    }

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth.platform.intuit.com":
            assert request.method == "POST"
            assert request.headers["Authorization"].startswith("Basic ")
            return json_response({"access_token": "qb-access"})

        assert request.url.path == "/v3/company/9130/query"
        assert request.headers["Authorization"] == "Bearer qb-access"
        query = request.url.params["query"]
        if "FROM Invoice" in query:
            return json_response(
                {
                    "QueryResponse": {
                        "Invoice": [
                            {
                                "Id": "101",
                                "DocNumber": "1001",
                                "TotalAmt": 150.50,
                                "Balance": 150.50,
                                "DueDate": "2024-02-01",
                                "CustomerRef": {"name": "Globex"},
                            },
                            {
                                "Id": "102",
                                "TotalAmt": 80,
                                "Balance": 0,
                                "DueDate": "2024-01-10",
                            },
                        ]
                    }
                }
            )
        return json_response(
            {
                "QueryResponse": {
                    "Payment": [
                        {"Id": "201", "TotalAmt": "80.00", "TxnDate": "2024-01-09"},
                    ]
                }
            }
        )

    @pytest.mark.asyncio
    async def test_imports_invoices_and_payments(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "quickbooks", self.CREDENTIALS
        )

        result = await dispatcher.sync(integration)
        again = await dispatcher.sync(integration)

        assert result.counts == {"invoices": 2, "payments": 1, "imported": 3}
        assert again.counts["imported"] == 0

        invoices = {i.amount: i for i in await storage.get_invoices(tenant.id)}
        assert invoices[15050].status == InvoiceStatus.DUE
        assert invoices[15050].client == "Globex"
        assert invoices[15050].due_date == datetime(2024, 2, 1, tzinfo=UTC)
        assert invoices[8000].status == InvoiceStatus.PAID
        assert invoices[8000].client == "Unknown Client"

        [payment] = await storage.get_transactions(tenant.id)
        assert payment.amount == 8000
        assert payment.source == "quickbooks"
        assert has_marker(payment.description, "QBPayment:201")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_refresh_token_requires_reauthorization(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        credentials = {k: v for k, v in self.CREDENTIALS.items() if k != "refreshToken"}
        integration = await connect_integration(
            storage, vault, tenant.id, "quickbooks", credentials
        )

        with pytest.raises(ReauthorizationRequired):
            await dispatcher.sync(integration)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rejected_refresh_token_requires_reauthorization(self, storage, vault):
        dispatcher, client = make_dispatcher(
            storage, vault, lambda r: json_response({"error": "invalid_grant"}, status_code=400)
        )
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "quickbooks", self.CREDENTIALS
        )

        with pytest.raises(ReauthorizationRequired) as exc_info:
            await dispatcher.sync(integration)

        assert exc_info.value.status_code == 400
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_token_response_raises_api_error(self, storage, vault):
        dispatcher, client = make_dispatcher(
            storage, vault, lambda r: httpx.Response(200, text="Service Unavailable")
        )
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "quickbooks", self.CREDENTIALS
        )

        with pytest.raises(PlatformAPIError):
            await dispatcher.sync(integration)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rows_from_before_markers_are_recognised(self, storage, vault):
        from ops_hub.models import Invoice, Transaction

        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        await storage.create_invoice(
            Invoice(
                user_id=tenant.id,
                amount=15050,
                due_date=datetime(2024, 2, 1, tzinfo=UTC),
                client="Globex",
                description="QuickBooks Invoice #1001",
                source="quickbooks",
            )
        )
        await storage.create_transaction(
            Transaction(
                user_id=tenant.id,
                type=TransactionType.PAYMENT,
                amount=8000,
                description="QuickBooks Payment #201",
                source="quickbooks",
            )
        )
        integration = await connect_integration(
            storage, vault, tenant.id, "quickbooks", self.CREDENTIALS
        )

        result = await dispatcher.sync(integration)

        assert result.counts["imported"] == 1
        invoices = await storage.get_invoices(tenant.id)
        assert len(invoices) == 2
        assert any(has_marker(i.description, "QBInvoice:102") for i in invoices)
        assert len(await storage.get_transactions(tenant.id)) == 1
        await client.aclose()


class TestPayPalSync:
    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/oauth2/token":
            return json_response({"access_token": "pp-access"})
        assert request.url.path == "/v1/reporting/transactions"
        return json_response(
            {
                "transaction_details": [
                    {
                        "transaction_info": {
                            "transaction_id": "TX1",
                            "transaction_status": "S",
                            "transaction_amount": {"value": "45.00"},
                            "transaction_initiation_date": "2024-01-05T12:00:00+0000",
                        },
                        "payer_info": {"payer_name": {"alternate_full_name": "Jane Doe"}},
                    },
                    {
                        "transaction_info": {
                            "transaction_id": "TX2",
                            "transaction_status": "S",
                            "transaction_amount": {"value": "-12.30"},
                        },
                        "payer_info": {},
                    },
                    {
                        "transaction_info": {
                            "transaction_id": "TX3",
                            "transaction_status": "P",
                            "transaction_amount": {"value": "99.00"},
                        },
                    },
                ]
            }
        )

    @pytest.mark.asyncio
    async def test_imports_completed_transactions(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "paypal", {"clientId": "id", "clientSecret": "secret"}
        )

        result = await dispatcher.sync(integration)
        again = await dispatcher.sync(integration)

        assert result.counts == {"transactions": 3, "imported": 2}
        assert again.counts["imported"] == 0

        by_amount = {t.amount: t for t in await storage.get_transactions(tenant.id)}
        assert by_amount[4500].type == TransactionType.PAYMENT
        assert "Jane Doe" in by_amount[4500].description
        assert by_amount[4500].date == datetime(2024, 1, 5, 12, 0, tzinfo=UTC)
        assert by_amount[1230].type == TransactionType.EXPENSE
        await client.aclose()


class TestAsanaSync:
    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/workspaces"):
            return json_response({"data": [{"gid": "w1"}]})
        assert request.url.params["workspace"] == "w1"
        return json_response(
            {
                "data": [
                    {"gid": "12", "name": "File taxes", "due_on": "2024-04-15", "notes": "Q1"},
                    {"gid": "13", "name": "Done already", "completed": True},
                    {"gid": "14", "name": "Call bank"},
                ]
            }
        )

    @pytest.mark.asyncio
    async def test_imports_open_tasks(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "asana", {"accessToken": "asana-token"}
        )

        result = await dispatcher.sync(integration)
        again = await dispatcher.sync(integration)

        assert result.counts == {"tasks": 2, "workspaces": 1, "imported": 2}
        assert again.counts["imported"] == 0

        tasks = {t.title: t for t in await storage.get_tasks(tenant.id)}
        assert tasks["File taxes"].priority == "high"
        assert tasks["File taxes"].description == "Synced from Asana:12 - Q1"
        assert tasks["Call bank"].priority == "medium"
        assert tasks["Call bank"].status == "pending"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_longer_id_does_not_shadow_shorter_one(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        await storage.create_task(
            Task(user_id=tenant.id, title="Old", description="Synced from Asana:123 - x")
        )
        integration = await connect_integration(
            storage, vault, tenant.id, "asana", {"accessToken": "asana-token"}
        )

        result = await dispatcher.sync(integration)

        assert result.counts["imported"] == 2
        await client.aclose()


class TestMondaySync:
    @pytest.mark.asyncio
    async def test_imports_active_items(self, storage, vault):
        def handler(request):
            assert request.headers["Authorization"] == "monday-key"
            return json_response(
                {
                    "data": {
                        "boards": [
                            {
                                "id": "b1",
                                "name": "Ops",
                                "items_page": {
                                    "items": [
                                        {"id": "1", "name": "Order stock", "state": "active"},
                                        {"id": "2", "name": "Archived", "state": "archived"},
                                    ]
                                },
                            }
                        ]
                    }
                }
            )

        dispatcher, client = make_dispatcher(storage, vault, handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "monday", {"apiKey": "monday-key"}
        )

        result = await dispatcher.sync(integration)
        again = await dispatcher.sync(integration)

        assert result.counts == {"items": 1, "boards": 1, "imported": 1}
        assert again.counts["imported"] == 0
        [task] = await storage.get_tasks(tenant.id)
        assert task.title == "Order stock"
        assert has_marker(task.description, "Monday:1")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self, storage, vault):
        dispatcher, client = make_dispatcher(
            storage, vault, lambda r: json_response({"errors": [{"message": "Not authorized"}]})
        )
        tenant = await add_tenant(storage)
        integration = await connect_integration(
            storage, vault, tenant.id, "monday", {"apiKey": "monday-key"}
        )

        with pytest.raises(PlatformAPIError, match="Not authorized"):
            await dispatcher.sync(integration)
        await client.aclose()


class TestXeroSync:
    CREDENTIALS = {
        "clientId": "xero-client",
        "clientSecret": "xero-secret",
        "tenantId": "tenant-1",
        "refreshToken": "refresh-1",
    }

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "identity.xero.com":
            return json_response({"access_token": "xero-access"})
        assert request.headers["xero-tenant-id"] == "tenant-1"
        return json_response(
            {
                "Invoices": [
                    {
                        "InvoiceID": "inv-a",
                        "InvoiceNumber": "INV-001",
                        "Status": "AUTHORISED",
                        "Total": 200.0,
                        "DueDateString": "2024-02-10T00:00:00",
                        "Contact": {"Name": "Initech"},
                    },
                    {"InvoiceID": "inv-b", "Status": "PAID", "Total": 50},
                    {"InvoiceID": "inv-c", "Status": "DRAFT", "Total": 75},
                ]
            }
        )

    @pytest.mark.asyncio
    async def test_imports_receivable_invoices(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        integration = await connect_integration(storage, vault, tenant.id, "xero", self.CREDENTIALS)

        result = await dispatcher.sync(integration)
        again = await dispatcher.sync(integration)

        assert result.counts == {"invoices": 3, "imported": 2}
        assert again.counts["imported"] == 0

        invoices = {i.amount: i for i in await storage.get_invoices(tenant.id)}
        assert invoices[20000].status == InvoiceStatus.DUE
        assert invoices[20000].client == "Initech"
        assert invoices[5000].status == InvoiceStatus.PAID
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_refresh_token_requires_reauthorization(self, storage, vault):
        dispatcher, client = make_dispatcher(storage, vault, self.handler)
        tenant = await add_tenant(storage)
        credentials = {k: v for k, v in self.CREDENTIALS.items() if k != "refreshToken"}
        integration = await connect_integration(storage, vault, tenant.id, "xero", credentials)

        with pytest.raises(ReauthorizationRequired):
            await dispatcher.sync(integration)
        await client.aclose()
