"""
MiniApp runtime state container.

One runtime per loaded spec. It owns the current page id, the mutable state
map, the active alert and the action index, and is mutated only from the
owning task. Problems during dispatch (unknown action ids, unknown target
pages, malformed params) are absorbed as no-ops.
"""
from typing import Any, Callable, Dict, Iterable, List, Optional

from miniapp.models.spec import Action, ActionType, Alert, Page, Spec
from miniapp.models.value import NULL, Value, ValueKind
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)

MISSING_PAGE_SENTINEL = "main"
DEFAULT_ALERT_MESSAGE = "Action completed."
FLASHLIGHT_ALERT = Alert(
    title="Flashlight",
    message="Flashlight toggle requested. Hook into device APIs on backend build.",
)
TIMER_ALERT = Alert(title="Timer", message="Timer started locally.")

Listener = Callable[["MiniAppRuntime"], None]


class MiniAppRuntime:
    """
    Mutable session created from an immutable Spec.

    Listeners registered with ``add_listener`` are called after any
    observable field (current page, state, alert) changes; the renderer
    uses them as its re-render trigger.
    """

    def __init__(self, spec: Optional[Spec] = None):
        self.spec: Optional[Spec] = None
        self.current_page_id: str = MISSING_PAGE_SENTINEL
        self.state: Dict[str, Value] = {}
        self.active_alert: Optional[Alert] = None
        self.action_index: Dict[str, Action] = {}
        self._listeners: List[Listener] = []
        if spec is not None:
            self.load(spec)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, spec: Spec) -> None:
        """Replace everything with a fresh session for ``spec``"""
        self.spec = spec
        self.current_page_id = spec.pages[0].id if spec.pages else MISSING_PAGE_SENTINEL
        self.state = dict(spec.initial_state)
        self.active_alert = None
        self.action_index = {action.id: action for action in spec.actions}

        logger.info(
            "runtime.spec.loaded",
            extra={
                "spec_id": spec.id,
                "pages": len(spec.pages),
                "actions": len(self.action_index),
                "state_keys": len(self.state),
            }
        )
        self._notify()

    def stop(self) -> None:
        self.spec = None
        self.current_page_id = MISSING_PAGE_SENTINEL
        self.state = {}
        self.active_alert = None
        self.action_index = {}
        self._notify()

    @property
    def is_loaded(self) -> bool:
        return self.spec is not None

    @property
    def current_page(self) -> Optional[Page]:
        if self.spec is None:
            return None
        return self.spec.page(self.current_page_id)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def read_binding(self, key: str, default: Any = None) -> Value:
        """``state[key]``, else ``default`` (Null when no default is given)"""
        if key in self.state:
            return self.state[key]
        return NULL if default is None else Value.of(default)

    def write_binding(self, key: str, value: Any) -> None:
        self.state[key] = Value.of(value)
        self._notify()

    def toggle(self, key: str) -> bool:
        """Negate the bool at ``key``; an unset key counts as false"""
        current = self.read_binding(key).as_bool() or False
        self.state[key] = Value.boolean(not current)
        self._notify()
        return not current

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def dispatch(self, action_ids: Iterable[str]) -> None:
        """Run the actions in list order, skipping ids that are not in the spec"""
        changed = False
        for action_id in action_ids:
            action = self.action_index.get(action_id)
            if action is None:
                logger.debug("runtime.dispatch.skipped", extra={"action_id": action_id})
                continue
            changed = self._perform(action) or changed
        if changed:
            self._notify()

    def dismiss_alert(self) -> None:
        if self.active_alert is not None:
            self.active_alert = None
            self._notify()

    def _perform(self, action: Action) -> bool:
        if action.type == ActionType.NAVIGATE:
            target = _string_param(action, "targetPageId")
            if target is None:
                logger.debug("runtime.navigate.ignored", extra={"action_id": action.id})
                return False
            self.current_page_id = target
            return True

        if action.type == ActionType.SHOW_ALERT:
            self.active_alert = Alert(
                title=_text_param(action, "title") or self.spec.name,
                message=_text_param(action, "message") or DEFAULT_ALERT_MESSAGE,
            )
            return True

        if action.type == ActionType.SET_STATE:
            key = _string_param(action, "key")
            if key is None or "value" not in action.params:
                logger.debug("runtime.set_state.ignored", extra={"action_id": action.id})
                return False
            self.state[key] = action.params["value"]
            return True

        if action.type == ActionType.TOGGLE_FLASHLIGHT:
            self.active_alert = FLASHLIGHT_ALERT
            return True

        if action.type == ActionType.START_TIMER:
            self.active_alert = TIMER_ALERT
            return True

        return False

    def snapshot(self) -> Dict[str, Any]:
        return {
            "spec_id": self.spec.id if self.spec else None,
            "current_page_id": self.current_page_id,
            "state": {k: v.to_json() for k, v in self.state.items()},
            "active_alert": self.active_alert.model_dump() if self.active_alert else None,
        }


def _string_param(action: Action, name: str) -> Optional[str]:
    """String parameter value; other kinds count as absent"""
    value = action.param(name)
    if value is None:
        return None
    return value.payload if value.kind is ValueKind.STRING else None


def _text_param(action: Action, name: str) -> Optional[str]:
    """Any scalar parameter rendered as text"""
    value = action.param(name)
    return value.as_string() if value is not None else None
