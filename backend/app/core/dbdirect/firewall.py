"""
Firewall synchronization.

A firewall backend is anything with replace_rule(rule_id, ips): it replaces the
whole rule set for that identifier. Backends are selected by name from
DBDIRECT_FIREWALL_BACKEND and built with DBDIRECT_FIREWALL_CONFIG, which is
handed over unmodified, plus DBDIRECT_FIREWALL_TIMEOUT_SECONDS as the
backend's own deadline.

FirewallSynchronizer makes a single, time-bounded attempt and turns any
backend failure into FirewallError carrying the backend's message. It does
not retry and does not classify errors.

A call that timed out may still reach the backend later. Until it finishes,
it stays registered as in flight for its (backend, rule_id) and the next
replace_rule for that rule waits for it, so a late write can never land on
top of a newer one.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Protocol

import httpx

from app.core.config import DbdirectOptions
from app.core.dbdirect.errors import FirewallError

logger = logging.getLogger(__name__)

# (id(backend), rule_id) -> call not yet finished
_inflight: dict[tuple[int, str], Future] = {}
_inflight_guard = threading.RLock()


class FirewallManager(Protocol):
    def replace_rule(self, rule_id: str, ips: list[str]) -> None: ...


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class MemoryFirewallManager:
    """Keeps rules on the instance. For local development and single-process runs."""

    def __init__(self, config: dict[str, Any], *, timeout: float | None = None) -> None:
        self.config = config
        self.rules: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def replace_rule(self, rule_id: str, ips: list[str]) -> None:
        with self._lock:
            self.rules[rule_id] = list(ips)


class HttpFirewallManager:
    """
    Pushes rules to an HTTP firewall service:
    PUT {url}/rules/{rule_id} with {"ips": [...]}.

    Config keys: url (required), token (optional bearer token),
    verify (optional, TLS verification, default True).
    `timeout` bounds each request (connect, read, write, pool).
    """

    def __init__(
        self,
        config: dict[str, Any],
        *,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        config = config or {}
        url = config.get("url")
        if not url:
            raise ValueError("http firewall backend requires 'url' in DBDIRECT_FIREWALL_CONFIG")
        self.config = config
        self._base_url = str(url).rstrip("/")
        headers: dict[str, str] = {}
        if config.get("token"):
            headers["Authorization"] = f"Bearer {config['token']}"
        self._headers = headers
        self._verify = bool(config.get("verify", True))
        self._timeout = httpx.Timeout(timeout if timeout and timeout > 0 else None)
        self._transport = transport

    def replace_rule(self, rule_id: str, ips: list[str]) -> None:
        with httpx.Client(
            headers=self._headers,
            verify=self._verify,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = client.put(f"{self._base_url}/rules/{rule_id}", json={"ips": list(ips)})
            resp.raise_for_status()


FIREWALL_BACKENDS: dict[str, type] = {
    "memory": MemoryFirewallManager,
    "http": HttpFirewallManager,
}


def get_firewall_manager_class(name: str) -> type:
    try:
        return FIREWALL_BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown firewall backend '{name}'. Available: {', '.join(sorted(FIREWALL_BACKENDS))}"
        ) from None


def build_firewall_manager(options: DbdirectOptions) -> FirewallManager:
    """Instantiate the configured backend with its config passed through as-is."""
    cls = get_firewall_manager_class(options.firewall_backend)
    return cls(options.firewall_config, timeout=options.firewall_timeout_seconds)


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------


def _start_call(manager: FirewallManager, rule_id: str, ips: list[str]) -> Future:
    # One worker per call: a hung backend call never queues calls for other rules.
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dbdirect-firewall")
    future = executor.submit(manager.replace_rule, rule_id, ips)
    executor.shutdown(wait=False)
    return future


def _forget(key: tuple[int, str], future: Future) -> None:
    with _inflight_guard:
        if _inflight.get(key) is future:
            del _inflight[key]


def _log_late_result(rule_id: str, future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is None:
        logger.warning(
            "Firewall rule %s replaced after its caller timed out; stored allowlist is behind",
            rule_id,
        )
    else:
        logger.warning("Firewall rule %s: timed-out call failed later: %s", rule_id, exc)


class FirewallSynchronizer:
    """
    Replace a firewall rule through `manager`, waiting at most `timeout`
    seconds (None or <= 0: wait indefinitely).
    """

    def __init__(self, manager: FirewallManager, *, timeout: float | None = None) -> None:
        self.manager = manager
        self.timeout = timeout if timeout and timeout > 0 else None

    def _submit(self, rule_id: str, ips: list[str]) -> Future:
        """Start the backend call once no earlier call for `rule_id` is in flight."""
        key = (id(self.manager), rule_id)
        while True:
            with _inflight_guard:
                previous = _inflight.get(key)
                if previous is None or previous.done():
                    future = _start_call(self.manager, rule_id, ips)
                    _inflight[key] = future
                    future.add_done_callback(lambda f: _forget(key, f))
                    return future
            _, pending = wait([previous], timeout=self.timeout)
            if pending:
                logger.warning(
                    "Firewall rule %s not replaced: earlier call still in progress", rule_id
                )
                raise FirewallError(
                    f"Previous update of firewall rule '{rule_id}' is still in progress"
                )

    def replace_rule(self, rule_id: str, ips: list[str]) -> None:
        future = self._submit(rule_id, list(ips))
        try:
            future.result(timeout=self.timeout)
        except FutureTimeoutError:
            if not future.cancel():
                # Still running; it stays in flight and blocks the next call for this rule.
                future.add_done_callback(lambda f: _log_late_result(rule_id, f))
            logger.warning(
                "Firewall rule %s not replaced: timed out after %ss", rule_id, self.timeout
            )
            raise FirewallError(
                f"Firewall backend timed out after {self.timeout}s"
            ) from None
        except Exception as e:
            logger.warning("Firewall rule %s not replaced: %s", rule_id, e)
            raise FirewallError(str(e) or type(e).__name__) from e
        logger.info("Firewall rule %s replaced (%d entries)", rule_id, len(ips))
