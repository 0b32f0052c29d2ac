"""
Exception taxonomy for the model store.

Every failure the store raises itself is a ``TypeError`` subclass:

- DefinitionError: the model definition is malformed (raised while compiling)
- ArgumentError: a ``get``/``set``/``create`` call has the wrong shape
- FrozenInstanceError: an attempt to mutate an instance in place

Adapter failures are not wrapped; they are cached and re-raised as they are.
"""


class StoreError(TypeError):
    """Base class for errors raised by the store."""


class DefinitionError(StoreError):
    """Raised when a model definition cannot be compiled."""


class ArgumentError(StoreError):
    """Raised when a store operation is called with invalid arguments."""


class FrozenInstanceError(StoreError, AttributeError):
    """Raised when an instance is mutated; use ``Store.set`` instead."""
