# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Colección "users" del árbol: {"<id>": {"name", "role", "pin"}}
# "pin" guarda el hash del PIN, nunca el PIN en texto plano.
# El administrador maestro NO vive aquí (ver Config.MASTER_*).
# ==============================================================================

from typing import Any, Dict, List, Optional

from .base import CollectionRepository, as_text


class UserRepository(CollectionRepository):
    """Repositorio del equipo de operadores."""

    collection = 'users'

    def get_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Busca un operador por nombre, sin distinguir mayúsculas.

        Args:
            name: Nombre usado en el login

        Returns:
            Datos del operador o None
        """
        wanted = as_text(name).lower()
        if not wanted:
            return None
        for user in self.list_all():
            if str(user.get('name', '')).strip().lower() == wanted:
                return user
        return None

    def get_admins(self) -> List[Dict[str, Any]]:
        """Operadores con rol admin."""
        return [u for u in self.list_all() if u.get('role') == 'admin']
