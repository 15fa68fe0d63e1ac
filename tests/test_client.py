import httpx
import pytest

from client import INCORRECT_PIN, AccessGate, AdminEditor, ApiError, GateLocked, GateState, KioskApi, refresh
from conftest import ADMIN_PIN
from kiosk import Kiosk
from schemas import KioskStatus


@pytest.fixture
def api(client):
    return KioskApi(client=client)


@pytest.fixture
def gate(api):
    return AccessGate(api)


@pytest.fixture
def editor(api, gate):
    assert gate.submit(ADMIN_PIN)
    return AdminEditor(api, gate)


def test_fetches_snapshots(api, seed_products):
    products = api.get_products()
    config = api.get_config()

    assert [p.id for p in products] == ["prod-001", "prod-002", "prod-003"]
    assert config.status == KioskStatus.LIVE
    assert config.categories == ["Drinks"]


def test_api_error_carries_server_message(api):
    with pytest.raises(ApiError) as exc:
        api.save_products("wrong", [])
    assert exc.value.status_code == 401
    assert exc.value.message == "Unauthorized"


def test_gate_starts_locked(gate):
    assert gate.state == GateState.LOCKED
    with pytest.raises(GateLocked):
        gate.pin


def test_gate_unlocks_with_correct_pin(gate):
    assert gate.submit(ADMIN_PIN)
    assert gate.unlocked
    assert gate.pin == ADMIN_PIN
    assert gate.error == ""


def test_wrong_pin_three_times_reports_each_attempt(gate):
    for _ in range(3):
        assert not gate.submit("0000")
        assert gate.state == GateState.LOCKED
        assert gate.error == INCORRECT_PIN

    assert gate.submit(ADMIN_PIN)


def test_empty_pin_is_ignored(gate):
    assert not gate.submit("")
    assert gate.error == ""


def test_resume_with_stale_cached_pin_locks(api):
    gate = AccessGate(api, cached_pin="9999")
    assert not gate.resume()
    assert gate.state == GateState.LOCKED


def test_resume_with_valid_cached_pin_unlocks(api):
    gate = AccessGate(api, cached_pin=ADMIN_PIN)
    assert gate.resume()
    assert gate.unlocked


def test_lock_forgets_pin(gate):
    gate.submit(ADMIN_PIN)
    gate.lock()
    assert not gate.unlocked
    assert not gate.resume()


def test_unlocked_flag_is_not_authoritative(api, gate, client):
    gate.submit(ADMIN_PIN)
    client.app.state.credential.replace("24680")

    with pytest.raises(ApiError) as exc:
        api.save_products(gate.pin, [])
    assert exc.value.status_code == 401


def test_editor_add_edit_save(editor, api, seed_products):
    editor.load()
    added = editor.add_product()
    index = len(editor.products) - 1
    editor.edit_field(index, "title", "Juice")
    editor.edit_field(index, "price", "2.5")
    editor.edit_field(index, "stock", "abc")
    editor.remove_product(0)

    assert added["id"].startswith("prod-")
    assert editor.save() == "Products updated"

    stored = api.get_products()
    assert [p.id for p in stored] == ["prod-002", "prod-003", added["id"]]
    assert stored[-1].title == "Juice"
    assert stored[-1].price == 2.5
    assert stored[-1].stock == 0


def test_editor_save_failure_message(editor, client):
    client.app.state.credential.replace("24680")
    assert editor.save() == "Unable to save products"


def test_editor_requires_unlocked_gate(api):
    editor = AdminEditor(api, AccessGate(api))
    with pytest.raises(GateLocked):
        editor.save()


@pytest.mark.parametrize("new_pin, confirm", [("12", "12"), ("12345", "54321"), ("", "")])
def test_editor_pin_update_checks_locally(editor, new_pin, confirm):
    assert editor.update_pin(new_pin, confirm) == "PINs must match and be at least 4 digits."
    assert editor.gate.pin == ADMIN_PIN


def test_editor_pin_update_rekeys_session(editor, api):
    assert editor.update_pin("8642", "8642") == "PIN updated successfully."
    assert editor.gate.pin == "8642"
    assert api.check_pin("8642")
    assert editor.save() == "Products updated"


def test_out_of_service_end_to_end(api, editor, seed_products):
    kiosk = Kiosk()
    refresh(kiosk, api)
    kiosk.change_quantity("prod-001", 1)
    assert kiosk.frame.cart.checkout_enabled

    editor.save_config(KioskStatus.OUT_OF_SERVICE.value, ["Drinks"], {})
    # No push: the kiosk still shows live until it re-fetches
    assert kiosk.frame.status.controls_enabled

    frame = refresh(kiosk, api)

    assert frame.status.overlay_visible
    assert all(not c.increment_enabled and not c.decrement_enabled for c in frame.catalog)
    assert kiosk.state.cart
    assert not frame.cart.checkout_enabled
    kiosk.change_quantity("prod-001", 1)
    assert kiosk.state.cart[0].quantity == 1


def test_admin_stock_change_is_reconciled_on_refresh(api, editor, seed_products):
    kiosk = Kiosk()
    refresh(kiosk, api)
    for _ in range(3):
        kiosk.change_quantity("prod-001", 1)

    editor.load()
    editor.edit_field(0, "stock", 1)
    editor.save()
    refresh(kiosk, api)

    assert kiosk.state.cart[0].quantity == 1
    assert kiosk.frame.catalog[0].stock_label == "Out of stock"


def mock_api(handler):
    return KioskApi(client=httpx.Client(transport=httpx.MockTransport(handler), base_url="http://kiosk"))


def server_error(request):
    return httpx.Response(500, json={"error": "Failed to read config"})


def connection_refused(request):
    raise httpx.ConnectError("refused", request=request)


@pytest.mark.parametrize("handler", [server_error, connection_refused])
def test_gate_submit_failure_stays_locked(handler):
    gate = AccessGate(mock_api(handler))

    assert not gate.submit(ADMIN_PIN)
    assert gate.state == GateState.LOCKED
    assert gate.error == INCORRECT_PIN


@pytest.mark.parametrize("handler", [server_error, connection_refused])
def test_gate_resume_failure_locks(handler):
    gate = AccessGate(mock_api(handler), cached_pin=ADMIN_PIN)

    assert not gate.resume()
    assert gate.state == GateState.LOCKED
    with pytest.raises(GateLocked):
        gate.pin


@pytest.mark.parametrize("handler", [server_error, connection_refused])
def test_editor_reports_unreachable_server(api, handler):
    gate = AccessGate(api)
    assert gate.submit(ADMIN_PIN)
    editor = AdminEditor(mock_api(handler), gate)

    assert editor.save() == "Unable to save products"
    assert editor.update_pin("8642", "8642") == "Unable to update PIN."
    assert gate.pin == ADMIN_PIN
