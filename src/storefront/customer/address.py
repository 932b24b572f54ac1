"""Customer delivery addresses.

Address management itself happens elsewhere; checkout only lists a
customer's addresses, default first, and formats the chosen one for the
order record.
"""

from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront


@storefront.aggregate
class Address:
    user_id = Identifier(required=True)
    label = String(max_length=50)
    street = String(required=True, max_length=255)
    number = String(required=True, max_length=20)
    complement = String(max_length=100)
    neighborhood = String(required=True, max_length=100)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=50)
    zip_code = String(max_length=20)
    is_default = Boolean(default=False)

    @property
    def formatted(self):
        text = f"{self.street}, {self.number}"
        if self.complement:
            text += f" - {self.complement}"
        return f"{text} - {self.neighborhood}, {self.city}/{self.state}"


def addresses_for(user_id):
    """Addresses of ``user_id`` with the default one first."""
    repo = current_domain.repository_for(Address)
    addresses = repo._dao.query.filter(user_id=user_id).all().items
    return sorted(addresses, key=lambda address: not address.is_default)
