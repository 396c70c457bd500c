"""
Minimal Redux-style state container.

Actions are plain dicts ``{"type", "payload", "meta"}``.  Case reducers
receive a deep copy of the slice state and may edit it in place; the
caller's state object is never touched, so every reducer built here is
a pure function of ``(state, action)``.

Thunks follow the ``pending`` / ``fulfilled`` / ``rejected`` protocol:
exactly one settling action is dispatched per run.
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from portal.http import ApiError

logger = logging.getLogger(__name__)

INIT = "@@portal/INIT"

STATUS = {"is_loading": False, "is_success": False, "is_error": False, "message": ""}

CaseReducer = Callable[[dict, dict], Optional[dict]]


def action(type_: str, payload: Any = None, **meta) -> dict:
    act = {"type": type_, "payload": payload}
    if meta:
        act["meta"] = meta
    return act


class ActionCreator:
    def __init__(self, type_: str):
        self.type = type_

    def __call__(self, payload: Any = None) -> dict:
        return action(self.type, payload)

    def __repr__(self):
        return f"ActionCreator({self.type!r})"


def make_reducer(initial_state: dict, handlers: Dict[str, CaseReducer]):
    def reducer(state: Optional[dict] = None, act: Optional[dict] = None) -> dict:
        if state is None:
            state = copy.deepcopy(initial_state)
        handler = handlers.get((act or {}).get("type"))
        if handler is None:
            return state
        draft = copy.deepcopy(state)
        result = handler(draft, act)
        return draft if result is None else result

    return reducer


def reset_status(draft: dict, _act: dict) -> None:
    draft.update(STATUS)


@dataclass
class Slice:
    name: str
    initial_state: dict
    reducer: Callable[[Optional[dict], Optional[dict]], dict]
    actions: Dict[str, ActionCreator] = field(default_factory=dict)

    @property
    def reset(self) -> ActionCreator:
        return self.actions["reset"]


def create_slice(name: str, initial_state: dict,
                 reducers: Optional[Dict[str, CaseReducer]] = None,
                 extra_reducers: Optional[Dict[str, CaseReducer]] = None) -> Slice:
    """Bundle a reducer with action creators named ``<name>/<key>``.

    ``reducers`` are keyed by short name and get their own action
    creators; ``extra_reducers`` are keyed by full action type (usually
    produced by :func:`async_status_cases`).  A ``reset`` case that clears
    the status flags is always present.
    """
    cases = {"reset": reset_status}
    cases.update(reducers or {})
    handlers: Dict[str, CaseReducer] = {}
    actions: Dict[str, ActionCreator] = {}
    for key, fn in cases.items():
        type_ = f"{name}/{key}"
        handlers[type_] = fn
        actions[key] = ActionCreator(type_)
    handlers.update(extra_reducers or {})
    return Slice(name=name, initial_state=copy.deepcopy(initial_state),
                 reducer=make_reducer(initial_state, handlers), actions=actions)


def rejection_message(exc: BaseException) -> str:
    if isinstance(exc, ApiError):
        return exc.message
    return str(exc) or exc.__class__.__name__


@dataclass
class ThunkApi:
    dispatch: Callable[[Any], Any]
    get_state: Callable[[], dict]
    extra: Dict[str, Any]

    def service(self, name: str):
        return self.extra[name]

    def token(self) -> str:
        return auth_token(self.get_state())


def auth_token(state: dict) -> str:
    user = (state.get("auth") or {}).get("user")
    token = user.get("token") if isinstance(user, dict) else None
    if not token:
        raise ApiError("Not authorized, no token", status=401)
    return token


class AsyncThunk:
    def __init__(self, type_prefix: str, payload_creator: Callable[[Any, ThunkApi], Any]):
        self.type_prefix = type_prefix
        self.payload_creator = payload_creator
        self.pending = f"{type_prefix}/pending"
        self.fulfilled = f"{type_prefix}/fulfilled"
        self.rejected = f"{type_prefix}/rejected"

    def __call__(self, arg: Any = None):
        def run(dispatch, get_state, extra):
            dispatch(action(self.pending, None, arg=arg))
            api = ThunkApi(dispatch=dispatch, get_state=get_state, extra=extra or {})
            try:
                payload = self.payload_creator(arg, api)
            except Exception as e:
                message = rejection_message(e)
                logger.info("thunk rejected type=%s msg=%s", self.type_prefix, message)
                return dispatch(action(self.rejected, message, arg=arg, error=True))
            return dispatch(action(self.fulfilled, payload, arg=arg))

        return run

    def __repr__(self):
        return f"AsyncThunk({self.type_prefix!r})"


def create_async_thunk(type_prefix: str, payload_creator: Callable[[Any, ThunkApi], Any]) -> AsyncThunk:
    return AsyncThunk(type_prefix, payload_creator)


def async_status_cases(thunk: AsyncThunk, on_fulfilled: Optional[CaseReducer] = None,
                       on_rejected: Optional[CaseReducer] = None) -> Dict[str, CaseReducer]:
    """The three status transitions every thunk shares."""

    def pending(draft, _act):
        draft["is_loading"] = True
        draft["is_success"] = False
        draft["is_error"] = False

    def fulfilled(draft, act):
        draft["is_loading"] = False
        draft["is_success"] = True
        draft["is_error"] = False
        if on_fulfilled is not None:
            return on_fulfilled(draft, act)

    def rejected(draft, act):
        draft["is_loading"] = False
        draft["is_success"] = False
        draft["is_error"] = True
        draft["message"] = act.get("payload") or ""
        if on_rejected is not None:
            return on_rejected(draft, act)

    return {thunk.pending: pending, thunk.fulfilled: fulfilled, thunk.rejected: rejected}


def is_rejected(act: Any) -> bool:
    return isinstance(act, dict) and str(act.get("type") or "").endswith("/rejected")


class Store:
    def __init__(self, reducers: Dict[str, Callable], extra: Optional[dict] = None,
                 preloaded_state: Optional[dict] = None):
        self._reducers = dict(reducers)
        self.extra = extra if extra is not None else {}
        self._listeners: List[Callable[[], None]] = []
        preloaded = preloaded_state or {}
        self._state = {key: r(preloaded.get(key), action(INIT)) for key, r in self._reducers.items()}

    def get_state(self) -> dict:
        return self._state

    def dispatch(self, act):
        if callable(act):
            return act(self.dispatch, self.get_state, self.extra)
        nxt = {key: r(self._state.get(key), act) for key, r in self._reducers.items()}
        changed = any(nxt[key] is not self._state.get(key) for key in nxt)
        if changed:
            self._state = nxt
            for listener in list(self._listeners):
                listener()
        return act

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
