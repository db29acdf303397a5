"""
Minimal observable state for manager objects.

Assigning a public attribute notifies every observer with the attribute
name and its new value. In-place mutation of a value is not observed, so
managers reassign lists instead of mutating them.
"""

from __future__ import annotations

from typing import Any, Callable

Observer = Callable[[str, Any], None]


class Subscription:
    def __init__(self, observers: list, callback: Observer):
        self._observers = observers
        self._callback = callback

    def remove(self) -> None:
        if self._callback in self._observers:
            self._observers.remove(self._callback)


class Observable:
    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name.startswith("_"):
            return
        for callback in list(self.__dict__.get("_observers", ())):
            callback(name, value)

    def observe(self, callback: Observer) -> Subscription:
        observers = self.__dict__.setdefault("_observers", [])
        observers.append(callback)
        return Subscription(observers, callback)
