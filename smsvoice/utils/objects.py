import functools
import threading
from typing import Callable, Generic, Optional, TypeVar

_T = TypeVar("_T")


class Value(Generic[_T]):
    """
    Simple value container.
    """

    value: Optional[_T]

    def __init__(self, value: _T = None) -> None:
        self.value = value

    def clear(self):
        self.value = None

    def set(self, value: _T):
        self.value = value

    def is_set(self) -> bool:
        return self.value is not None

    def get(self) -> Optional[_T]:
        return self.value


def singleton_factory(factory: Callable[[], _T]) -> Callable[[], _T]:
    """
    Decorator for functions that create a value once and then return the same value in a thread safe
    way. ``clear`` on the decorated function resets it, so the next call creates the value again.

    :param factory: the function to decorate, must not return None
    :return: a threadsafe singleton factory
    """
    lock = threading.RLock()
    instance: Value[_T] = Value()

    @functools.wraps(factory)
    def _singleton_factory() -> _T:
        if instance.is_set():
            return instance.get()

        with lock:
            if not instance.is_set():
                instance.set(factory())

            return instance.get()

    _singleton_factory.clear = instance.clear

    return _singleton_factory
