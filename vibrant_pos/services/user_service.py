# ==============================================================================
# SERVICIO DE USUARIOS Y AUTORIZACIÓN
# ==============================================================================
# Centraliza autenticación de operadores, gestión del equipo y la
# autorización secundaria para anular ventas.
#
# - Login por nombre (sin distinguir mayúsculas) + PIN
# - Login por crachá escaneado: "TENDA-LOGIN|<nombre>|<pin>"
# - Administrador maestro configurable (no vive en el store)
# - PINs guardados con hash de werkzeug (se aceptan PINs legacy en texto plano)
# - Anular ventas exige un VoidAuthorization: código de anulación
#   configurado o PIN de cualquier administrador
# ==============================================================================

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from vibrant_pos.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from vibrant_pos.models import User, UserRole
from vibrant_pos.repositories.base import as_text
from vibrant_pos.repositories.interfaces import IUserRepository
from vibrant_pos.services.audit_service import AuditService

logger = logging.getLogger(__name__)

BADGE_PREFIX = 'TENDA-LOGIN'
MASTER_ID = 'admin'


@dataclass(frozen=True)
class VoidAuthorization:
    """
    Permiso para anular ventas, emitido solo por UserService.authorize_void().

    Attributes:
        operator: Operador que pidió la anulación
        granted_by: Quién autorizó ('codigo' o nombre del admin)
        granted_at: Timestamp ISO de la autorización
    """
    operator: str
    granted_by: str
    granted_at: str


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode('utf-8'), b.encode('utf-8'))


def _pin_matches(stored: str, pin: str) -> bool:
    """Compara un PIN con su hash (o con un PIN legacy en texto plano)."""
    if not stored or not pin:
        return False
    if stored.startswith('pbkdf2:') or stored.startswith('scrypt:'):
        return check_password_hash(stored, pin)
    return _same(stored, pin)


def parse_badge_token(token: str) -> Optional[Dict[str, str]]:
    """
    Descompone un token de crachá.

    Returns:
        {'name': ..., 'pin': ...} o None si no es un token válido
    """
    parts = as_text(token).split('|')
    if len(parts) != 3 or parts[0] != BADGE_PREFIX:
        return None
    name, pin = parts[1].strip(), parts[2].strip()
    if not name or not pin:
        return None
    return {'name': name, 'pin': pin}


def build_badge_token(name: str, pin: str) -> str:
    return f'{BADGE_PREFIX}|{name}|{pin}'


class UserService:
    """
    Servicio para gestión de operadores.

    Responsabilidades:
    - Autenticación (PIN y crachá)
    - Alta, listado y baja del equipo
    - Autorización secundaria de anulaciones
    """

    VALID_ROLES = frozenset(role.value for role in UserRole)

    def __init__(
        self,
        user_repo: IUserRepository,
        audit_service: Optional[AuditService] = None,
        master_user: str = 'admin',
        master_pin: str = '1234',
        master_name: str = 'Administrador Mestre',
        void_code: str = ''
    ):
        """
        Args:
            user_repo: Repositorio del equipo
            audit_service: Servicio de auditoría (opcional)
            master_user / master_pin / master_name: Administrador maestro
            void_code: Código de anulación (vacío = solo PIN de admin)
        """
        self.user_repo = user_repo
        self.audit_service = audit_service
        self.master_user = master_user
        self.master_pin = master_pin
        self.master_name = master_name
        self.void_code = void_code

    def _audit_security(self, user: str, message: str, details: Dict[str, Any] = None) -> None:
        if self.audit_service:
            self.audit_service.log_security(user, message, details)

    def _master(self) -> User:
        return User(id=MASTER_ID, name=self.master_name, role=UserRole.ADMIN)

    def _is_master_login(self, name: str, pin: str) -> bool:
        return (
            bool(self.master_user and self.master_pin)
            and name.strip().lower() == self.master_user.lower()
            and _same(pin, self.master_pin)
        )

    # =========================================================================
    # AUTENTICACIÓN
    # =========================================================================

    def authenticate(self, name: str, pin: str) -> User:
        """
        Autentica un operador por nombre y PIN.

        Returns:
            Operador autenticado

        Raises:
            AuthenticationError: Si las credenciales no coinciden
        """
        name = as_text(name)
        pin = str(pin or '').strip()
        if not name or not pin:
            raise AuthenticationError('Credenciais inválidas.')

        if self._is_master_login(name, pin):
            user = self._master()
        else:
            data = self.user_repo.get_by_name(name)
            if not data or not _pin_matches(data.get('pin', ''), pin):
                logger.warning("Login fallido para '%s'", name)
                self._audit_security(name, f"Tentativa de login inválida para {name}")
                raise AuthenticationError('Credenciais inválidas.')
            user = User.from_dict(data)

        self._audit_security(user.name, f"Login de {user.name}")
        return user

    def authenticate_badge(self, token: str) -> User:
        """
        Autentica con el token de un crachá escaneado.

        Raises:
            AuthenticationError: Si el token no es válido
        """
        parsed = parse_badge_token(token)
        if not parsed:
            raise AuthenticationError('Crachá inválido.')
        return self.authenticate(parsed['name'], parsed['pin'])

    # =========================================================================
    # CRUD DEL EQUIPO
    # =========================================================================

    def list_users(self) -> List[Dict[str, Any]]:
        """Equipo sin hashes de PIN, ordenado por nombre."""
        users = [User.from_dict(u).to_public_dict() for u in self.user_repo.list_all()]
        return sorted(users, key=lambda u: u['name'].lower())

    def create_user(self, name: str, pin: str, role: str = 'vendedor', admin_user: str = None) -> Dict[str, Any]:
        """
        Agrega un operador al equipo.

        Raises:
            ValidationError: Nombre o PIN vacíos, rol inválido o nombre repetido
        """
        name = as_text(name)
        pin = str(pin or '').strip()
        if not name:
            raise ValidationError('Nome do usuário é obrigatório.')
        if not pin:
            raise ValidationError('PIN é obrigatório.')
        if role not in self.VALID_ROLES:
            raise ValidationError(f'Função inválida: {role}')
        if self.user_repo.get_by_name(name) or name.lower() == (self.master_user or '').lower():
            raise ValidationError('Já existe um usuário com esse nome.')

        user_id = self.user_repo.create({
            'name': name,
            'role': role,
            'pin': generate_password_hash(pin),
        })
        user = User(id=user_id, name=name, role=UserRole(role))

        self._audit_security(admin_user, f"Usuário {name} ({role}) criado por {admin_user}")
        return user.to_public_dict()

    def delete_user(self, user_id: str, admin_user: str = None) -> Dict[str, Any]:
        """
        Elimina un operador.

        Raises:
            NotFoundError: Si el operador no existe
        """
        removed = self.user_repo.delete(user_id)
        if removed is None:
            raise NotFoundError('Usuário não encontrado.')

        self._audit_security(admin_user, f"Usuário {removed.get('name', '')} removido por {admin_user}")
        return User.from_dict(removed).to_public_dict()

    # =========================================================================
    # AUTORIZACIÓN DE ANULACIONES
    # =========================================================================

    def authorize_void(self, code: str, operator: str) -> VoidAuthorization:
        """
        Verifica el código de autorización para anular ventas.

        Acepta el código de anulación configurado o el PIN de cualquier
        administrador (incluido el maestro).

        Raises:
            AuthorizationError: Si el código no es válido
        """
        code = str(code or '').strip()
        granted_by = None

        if code:
            if self.void_code and _same(code, self.void_code):
                granted_by = 'codigo'
            elif self.master_pin and _same(code, self.master_pin):
                granted_by = self.master_name
            else:
                for admin in self.user_repo.get_admins():
                    if _pin_matches(admin.get('pin', ''), code):
                        granted_by = admin.get('name', '')
                        break

        if granted_by is None:
            logger.warning("Autorización de anulación rechazada para '%s'", operator)
            self._audit_security(operator, f"Autorização de cancelamento negada para {operator}")
            raise AuthorizationError('Código de autorização inválido.')

        self._audit_security(
            operator, f"Cancelamento autorizado para {operator}", {'granted_by': granted_by}
        )
        return VoidAuthorization(
            operator=operator,
            granted_by=granted_by,
            granted_at=datetime.now(timezone.utc).isoformat(),
        )
