# ==============================================================================
# REPOSITORIO DE CONFIGURACIÓN DE LA TIENDA
# ==============================================================================
# Documento único "settings" del árbol:
#   {"company_name": "Vibrant POS", "logo_url": "...", "pix_qr_url": "..."}
# ==============================================================================

from typing import Any, Callable, Dict

from .base import JsonDocumentStore


class SettingsRepository:
    """
    Repositorio del documento de configuración.
    No es una colección: vive en una sola ruta del árbol.
    """

    PATH = 'settings'
    DEFAULTS = {'company_name': 'Vibrant POS'}

    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def load(self) -> Dict[str, Any]:
        """
        Carga la configuración.

        Returns:
            Configuración guardada sobre los valores por defecto
        """
        data = self.store.get(self.PATH)
        settings = dict(self.DEFAULTS)
        if isinstance(data, dict):
            settings.update(data)
        return settings

    def update(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Actualiza campos (None elimina el campo) y retorna el resultado."""
        self.store.patch(self.PATH, updates)
        return self.load()

    def subscribe(self, callback: Callable[[Dict[str, Any]], None]) -> Callable[[], None]:
        return self.store.subscribe(self.PATH, lambda snap: callback(dict(self.DEFAULTS, **(snap or {}))))
