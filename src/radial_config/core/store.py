"""In-memory mirror of the device configuration."""

import logging
from collections.abc import Callable
from datetime import datetime

from radial_config.core.models import ConfigParameter, ConfigRecord
from radial_config.protocol.codec import layout_keys
from radial_config.protocol.constants import DEFAULT_LAYOUT, PARAMETER_DEFS

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ConfigParameter], None]


class ParameterStore:
    """Authoritative host-side copy of the device settings.

    Keys are fixed by the record layout. Every write clamps the value into
    the parameter's range, so the store never holds an out-of-range value.
    Only the protocol task touches it; no locking is needed.
    """

    def __init__(self, layout: int = DEFAULT_LAYOUT) -> None:
        self._layout = layout
        self._parameters: dict[str, ConfigParameter] = {}
        for key in layout_keys(layout):
            min_value, max_value, default, label = PARAMETER_DEFS[key]
            self._parameters[key] = ConfigParameter(
                key=key,
                value=default,
                min=min_value,
                max=max_value,
                default=default,
                label=label,
            )
        self._listeners: list[ChangeListener] = []
        self._last_update: datetime | None = None
        self._firmware: tuple[int, int] | None = None

    @property
    def layout(self) -> int:
        return self._layout

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked with each changed parameter."""
        self._listeners.append(listener)

    def get(self, key: str) -> ConfigParameter | None:
        """Get parameter by key."""
        return self._parameters.get(key)

    def get_all(self) -> dict[str, ConfigParameter]:
        """Get all parameters keyed by name, in record order."""
        return dict(self._parameters)

    def values(self) -> dict[str, int]:
        """Current values keyed by parameter."""
        return {key: param.value for key, param in self._parameters.items()}

    def __contains__(self, key: str) -> bool:
        return key in self._parameters

    def set_value(self, key: str, value: int) -> ConfigParameter:
        """
        Store a value, clamping it into range.

        Raises:
            KeyError: If the key is unknown
        """
        param = self._parameters[key]
        clamped = param.clamp(value)
        if clamped != value:
            logger.warning("Value %s for %s out of range [%d, %d], clamped to %d", value, key, param.min, param.max, clamped)

        self._last_update = datetime.now()
        if clamped == param.value:
            return param

        updated = param.model_copy(update={"value": clamped})
        self._parameters[key] = updated
        self._notify(updated)
        return updated

    def apply_record(self, record: ConfigRecord) -> None:
        """Store every field of a decoded record."""
        for key, value in record.values.items():
            if key in self._parameters:
                self.set_value(key, value)
        self._firmware = (record.version, record.revision)

    def _notify(self, param: ConfigParameter) -> None:
        for listener in self._listeners:
            try:
                listener(param)
            except Exception as e:
                logger.error("Parameter listener failed for %s: %s", param.key, e)

    @property
    def firmware(self) -> tuple[int, int] | None:
        """(version, revision) reported by the last decoded record."""
        return self._firmware

    @property
    def last_update(self) -> datetime | None:
        """Get timestamp of last store update."""
        return self._last_update

    @property
    def count(self) -> int:
        """Get number of parameters."""
        return len(self._parameters)
