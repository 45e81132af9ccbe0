"""
Advance Appointment Panel

UI-independent state machine behind the advance appointment side panel.
"""

from .controller import PanelController, InvalidTransition
from .state import PanelState, AppointmentDraft
from .storage import (
    PanelPersistence,
    PanelStorage,
    MemoryStorage,
    JsonFileStorage,
    SupabaseStorage,
    get_panel_storage,
)

__all__ = [
    "PanelController",
    "InvalidTransition",
    "PanelState",
    "AppointmentDraft",
    "PanelPersistence",
    "PanelStorage",
    "MemoryStorage",
    "JsonFileStorage",
    "SupabaseStorage",
    "get_panel_storage",
]
