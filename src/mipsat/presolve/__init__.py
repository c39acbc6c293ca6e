from .stack import PresolveStack
from .steps import (
    EmptyColumnStep,
    EmptyRowStep,
    FixedColumnStep,
    PresolveStep,
    SingletonRowStep,
    default_steps,
)

__all__ = [
    "PresolveStack",
    "PresolveStep",
    "SingletonRowStep",
    "FixedColumnStep",
    "EmptyRowStep",
    "EmptyColumnStep",
    "default_steps",
]
