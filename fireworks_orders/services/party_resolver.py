"""
Party Resolver - denormalized contact fields for a customer reference
"""
from dataclasses import dataclass
from typing import Optional

from fireworks_orders.exceptions import NotFound
from fireworks_orders.repositories.catalog_repository import CustomerRepository

CUSTOMER_TYPE_USER = "User"
CUSTOMER_TYPE_AGENT = "Agent"
CUSTOMER_TYPE_AGENT_CUSTOMER = "Customer of Selected Agent"


@dataclass(frozen=True)
class PartySnapshot:
    customer_id: Optional[int]
    customer_name: Optional[str]
    address: Optional[str]
    mobile_number: Optional[str]
    email: Optional[str]
    district: Optional[str]
    state: Optional[str]
    customer_type: str
    agent_name: Optional[str] = None


class PartyResolver:
    """Reads customers and attaches the agent's name for agent customers"""

    def __init__(self, repository: CustomerRepository):
        self.repository = repository

    def resolve(self, customer_id: int) -> PartySnapshot:
        rows = self.repository.find_all(customer_id)
        if len(rows) != 1:
            raise NotFound("Customer not found")
        customer = rows[0]

        customer_type = customer.customer_type or CUSTOMER_TYPE_USER
        agent_name = None
        if customer_type == CUSTOMER_TYPE_AGENT_CUSTOMER and customer.agent_id:
            agent = self.repository.get_by_id(customer.agent_id)
            if agent is not None:
                agent_name = agent.customer_name

        return PartySnapshot(
            customer_id=customer.id,
            customer_name=customer.customer_name,
            address=customer.address,
            mobile_number=customer.mobile_number,
            email=customer.email,
            district=customer.district,
            state=customer.state,
            customer_type=customer_type,
            agent_name=agent_name,
        )
