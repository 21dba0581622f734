"""Status enumerations stored in program accounts."""

from __future__ import annotations

from enum import IntEnum


class MachineStatus(IntEnum):
    IDLE = 0
    FOR_RENT = 1
    RENTING = 2

    def __str__(self) -> str:
        return {
            MachineStatus.IDLE: "Idle",
            MachineStatus.FOR_RENT: "ForRent",
            MachineStatus.RENTING: "Renting",
        }[self]


class OrderStatus(IntEnum):
    TRAINING = 0
    COMPLETED = 1
    FAILED = 2
    REFUNDED = 3

    def __str__(self) -> str:
        return {
            OrderStatus.TRAINING: "Training",
            OrderStatus.COMPLETED: "Completed",
            OrderStatus.FAILED: "Failed",
            OrderStatus.REFUNDED: "Refunded",
        }[self]