"""
Tests de la vérification différée de disponibilité du login.
"""
import asyncio

from app.services.login_check import DebouncedLoginCheck, LoginAvailability


async def test_available_and_taken(store):
    store.collections["users"]["P1"]["login"] = "adiop"
    checker = DebouncedLoginCheck(store, delay_ms=0)
    assert await checker.check("s", "adiop") is LoginAvailability.TAKEN
    assert await checker.check("s", "nouveau") is LoginAvailability.AVAILABLE


async def test_own_document_is_excluded(store):
    store.collections["users"]["P1"]["login"] = "adiop"
    checker = DebouncedLoginCheck(store, delay_ms=0)
    assert await checker.check("s", "adiop", exclude_doc_id="P1") is LoginAvailability.AVAILABLE


async def test_invalid_login_not_queried(store):
    checker = DebouncedLoginCheck(store, delay_ms=0)
    assert await checker.check("s", "a b") is LoginAvailability.INVALID
    assert store.calls == []


async def test_new_input_supersedes_pending_check(store):
    checker = DebouncedLoginCheck(store, delay_ms=50)
    first = asyncio.create_task(checker.check("s", "jdup"))
    await asyncio.sleep(0.01)
    second = await checker.check("s", "jdupont")
    assert await first is LoginAvailability.SUPERSEDED
    assert second is LoginAvailability.AVAILABLE
    # seule la dernière saisie a interrogé le magasin
    assert len([c for c in store.calls if c[0] == "query"]) == 1


async def test_sessions_are_independent(store):
    checker = DebouncedLoginCheck(store, delay_ms=20)
    a, b = await asyncio.gather(checker.check("a", "login1"), checker.check("b", "login2"))
    assert a is b is LoginAvailability.AVAILABLE


async def test_store_failure_reports_unknown(store):
    store.fail_reads = True
    checker = DebouncedLoginCheck(store, delay_ms=0)
    assert await checker.check("s", "jdupont") is LoginAvailability.UNKNOWN
