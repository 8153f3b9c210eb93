"""Street view generation services."""

from .gemini_service import GeminiService, GenerationResult
from .generation_service import GenerationOrchestrator
from .geocoding_service import GeocodingService
from .gesture_service import GestureController
from .map_session import MapSession
from .prompt_service import PromptBuilder
from .selection_service import SelectionState, can_generate, requirement_hint
from .settings_service import SettingsRepository, SettingsService, YamlFileStore
from .storage_service import FantasyMapStorage, GalleryService

__all__ = [
    "GeminiService",
    "GenerationResult",
    "GenerationOrchestrator",
    "GeocodingService",
    "GestureController",
    "MapSession",
    "PromptBuilder",
    "SelectionState",
    "can_generate",
    "requirement_hint",
    "SettingsRepository",
    "SettingsService",
    "YamlFileStore",
    "FantasyMapStorage",
    "GalleryService",
]
