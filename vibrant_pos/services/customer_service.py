# ==============================================================================
# SERVICIO DE CLIENTES
# ==============================================================================
# Registro de clientes. Un cliente es obligatorio en ventas a crediário:
# las cuotas quedan asociadas a un deudor con nombre.
# ==============================================================================

from typing import Any, Dict, List, Optional

from vibrant_pos.errors import NotFoundError, ValidationError
from vibrant_pos.models import Customer
from vibrant_pos.repositories.interfaces import ICustomerRepository


class CustomerService:
    """Servicio para gestión de clientes."""

    def __init__(self, customer_repo: ICustomerRepository):
        self.customer_repo = customer_repo

    @staticmethod
    def _normalize(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        fields = {}
        if 'name' in data or not partial:
            fields['name'] = str(data.get('name') or '').strip()
            if not fields['name']:
                raise ValidationError('Nome do cliente é obrigatório.')
        if 'contact' in data or not partial:
            fields['contact'] = str(data.get('contact') or '').strip()
        return fields

    def list_customers(self) -> List[Dict[str, Any]]:
        return self.customer_repo.list_sorted()

    def get_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        return self.customer_repo.get_by_id(customer_id)

    def require_customer(self, customer_id: str) -> Customer:
        """
        Raises:
            NotFoundError: Si el cliente no existe
        """
        data = self.get_customer(customer_id)
        if not data:
            raise NotFoundError('Cliente não encontrado.')
        return Customer.from_dict(data)

    def create_customer(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea un cliente.

        Raises:
            ValidationError: Si falta el nombre
        """
        fields = self._normalize(data)
        customer_id = self.customer_repo.create(fields)
        return dict(fields, id=customer_id)

    def update_customer(self, customer_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        customer = self.require_customer(customer_id).to_dict()
        fields = self._normalize(updates, partial=True)
        if fields:
            self.customer_repo.update(customer_id, fields)
            customer.update(fields)
        return customer
