"""Ordering of the hooks placed on one function, and the per-thread call stack."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass

from tulipgen.types import HookMetadata

ORIGINAL_PRIORITY = 2**31 - 1

_handles = itertools.count(1)


@dataclass
class Hook:
    """A detour function and its settings."""

    address: int
    metadata: HookMetadata


class HookChain:
    """The detours of one function, kept in the order they are called.

    If ``original`` is given it stands for the relocated original function and
    always runs after every other hook.
    """

    def __init__(self, original: int | None = None) -> None:
        self.original = original
        self.hooks: dict[int, Hook] = {}
        self._handle_of: dict[int, int] = {}
        self._functions: list[int] = []
        self._add_original()

    def _add_original(self) -> None:
        if self.original is not None:
            self.create_hook(self.original, HookMetadata(priority=ORIGINAL_PRIORITY))

    def functions(self) -> tuple[int, ...]:
        """The hooked addresses, lowest priority first."""
        return tuple(self._functions)

    def create_hook(self, address: int, metadata: HookMetadata) -> int:
        """Add a detour and return its handle."""
        handle = next(_handles)
        self.hooks[handle] = Hook(address, metadata)
        self._handle_of[address] = handle
        self._functions.append(address)
        self._reorder()
        return handle

    def remove_hook(self, handle: int) -> None:
        """Remove a detour; raises KeyError for an unknown handle."""
        try:
            hook = self.hooks.pop(handle)
        except KeyError:
            raise KeyError(f"unknown hook handle {handle}") from None
        self._handle_of.pop(hook.address, None)
        self._functions = [address for address in self._functions if address != hook.address]

    def clear_hooks(self) -> None:
        """Remove every detour, keeping only the original."""
        self.hooks.clear()
        self._handle_of.clear()
        self._functions.clear()
        self._add_original()

    def update_hook_metadata(self, handle: int, metadata: HookMetadata) -> None:
        """Change a detour's settings; raises KeyError for an unknown handle."""
        try:
            self.hooks[handle].metadata = metadata
        except KeyError:
            raise KeyError(f"unknown hook handle {handle}") from None
        self._reorder()

    def _reorder(self) -> None:
        self._functions.sort(
            key=lambda address: self.hooks[self._handle_of[address]].metadata.priority
        )


class CallStack:
    """Tracks, per thread, how far each active call has walked its hook chain."""

    def __init__(self) -> None:
        self._local = threading.local()

    def _state(self) -> threading.local:
        state = self._local
        if not hasattr(state, "chains"):
            state.chains = []
            state.indices = []
            state.data = []
        return state

    def increment_index(self, chain: HookChain) -> None:
        """Enter a call of ``chain``, or move to its next hook if already inside it."""
        state = self._state()
        if state.chains and state.chains[-1] is chain:
            state.indices[-1] += 1
        else:
            state.chains.append(chain)
            state.indices.append(0)

    def decrement_index(self) -> None:
        """Step back one hook, leaving the chain when its first hook returns."""
        state = self._state()
        if not state.indices:
            raise IndexError("call stack is empty")
        if state.indices[-1] == 0:
            state.chains.pop()
            state.indices.pop()
        else:
            state.indices[-1] -= 1

    def next_function(self, chain: HookChain) -> int:
        """The address the current call of ``chain`` should run next."""
        state = self._state()
        if not state.indices:
            raise IndexError("call stack is empty")
        functions = chain.functions()
        if not functions:
            raise IndexError("hook chain has no functions")
        return functions[state.indices[-1] % len(functions)]

    def push_data(self, data: object) -> None:
        self._state().data.append(data)

    def pop_data(self) -> object:
        data = self._state().data
        if not data:
            raise IndexError("data stack is empty")
        return data.pop()