"""Device classification used by the access checks."""

from enum import Enum


class DeviceType(str, Enum):
    LIGHT = "light"
    THERMOSTAT = "thermostat"
    LOCK = "lock"
    CAMERA = "camera"
    CLIMATE = "climate"
    DOOR = "door"
