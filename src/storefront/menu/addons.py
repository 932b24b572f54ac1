"""Add-on groups and options attached to menu products.

A group carries its selection rules (``min_selections``, ``max_selections``,
``is_required``). Groups are shared between products through
``ProductAddonGroup`` link rows.
"""

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront


@storefront.entity(part_of="AddonGroup")
class AddonOption:
    name = String(required=True, max_length=255)
    additional_price = Integer(default=0, min_value=0)  # cents
    is_available = Boolean(default=True)
    sort_order = Integer(default=0)


@storefront.aggregate
class AddonGroup:
    tenant_id = Identifier()
    name = String(required=True, max_length=255)
    description = Text()
    min_selections = Integer(default=0, min_value=0)
    max_selections = Integer(default=1, min_value=1)
    is_required = Boolean(default=False)
    is_active = Boolean(default=True)
    sort_order = Integer(default=0)
    options = HasMany(AddonOption)

    @invariant.post
    def minimum_cannot_exceed_maximum(self):
        if self.min_selections > self.max_selections:
            raise ValidationError({"min_selections": ["Minimum selections cannot exceed maximum selections"]})

    @property
    def is_single_choice(self):
        return self.max_selections == 1

    @property
    def available_options(self):
        return sorted((o for o in self.options if o.is_available), key=lambda o: o.sort_order)


@storefront.aggregate
class ProductAddonGroup:
    product_id = Identifier(required=True)
    addon_group_id = Identifier(required=True)


def addon_groups_for(product_id):
    """Active add-on groups linked to ``product_id``, in display order."""
    links = current_domain.repository_for(ProductAddonGroup)._dao.query.filter(product_id=product_id).all().items

    repo = current_domain.repository_for(AddonGroup)
    groups = []
    for link in links:
        try:
            group = repo.get(link.addon_group_id)
        except ObjectNotFoundError:
            continue
        if group.is_active:
            groups.append(group)
    return sorted(groups, key=lambda group: group.sort_order)
