"""Add-on selection for one product before it goes into the cart.

Groups with ``max_selections == 1`` behave like radio buttons: choosing an
option replaces the previous one. Other groups allow several options, each
with its own quantity, as long as the quantities in the group add up to at
most ``max_selections``.
"""

from protean.exceptions import ValidationError

from storefront.cart.cart import AddonSelection


class AddonSelector:
    def __init__(self, groups):
        self.groups = list(groups)
        self._groups_by_id = {str(group.id): group for group in self.groups}
        self._selections = {str(group.id): {} for group in self.groups}

    def _group(self, group_id):
        group = self._groups_by_id.get(str(group_id))
        if group is None:
            raise ValidationError({"group_id": [f"Unknown add-on group {group_id}"]})
        return group

    def _option(self, group, option_id):
        option = next((o for o in group.available_options if str(o.id) == str(option_id)), None)
        if option is None:
            raise ValidationError({"option_id": [f"Option {option_id} is not available in {group.name}"]})
        return option

    def group_count(self, group_id):
        return sum(self._selections[str(group_id)].values())

    def quantity_of(self, group_id, option_id):
        return self._selections[str(group_id)].get(str(option_id), 0)

    def toggle(self, group_id, option_id):
        """Select or deselect an option. Returns False when the group is full."""
        group = self._group(group_id)
        self._option(group, option_id)
        chosen = self._selections[str(group.id)]
        option_key = str(option_id)

        if option_key in chosen:
            del chosen[option_key]
        elif group.is_single_choice:
            chosen.clear()
            chosen[option_key] = 1
        elif self.group_count(group.id) < group.max_selections:
            chosen[option_key] = 1
        else:
            return False
        return True

    def change_quantity(self, group_id, option_id, delta):
        """Add ``delta`` units of an option. Returns False when the group would overflow.

        In single-choice groups the option replaces the previous choice and
        never goes above one unit.
        """
        group = self._group(group_id)
        self._option(group, option_id)
        chosen = self._selections[str(group.id)]
        option_key = str(option_id)
        current = chosen.get(option_key, 0)
        new_quantity = current + delta

        if new_quantity <= 0:
            chosen.pop(option_key, None)
        elif group.is_single_choice:
            chosen.clear()
            chosen[option_key] = 1
        elif self.group_count(group.id) - current + new_quantity > group.max_selections:
            return False
        else:
            chosen[option_key] = new_quantity
        return True

    @property
    def missing_groups(self):
        return [
            group
            for group in self.groups
            if group.is_required and self.group_count(group.id) < group.min_selections
        ]

    @property
    def is_valid(self):
        return not self.missing_groups

    @property
    def addons_unit_price(self):
        return sum(addon.unit_price * addon.quantity for addon in self.selected_addons())

    def selected_addons(self):
        selections = []
        for group in self.groups:
            for option in group.available_options:
                quantity = self.quantity_of(group.id, option.id)
                if quantity > 0:
                    selections.append(
                        AddonSelection(
                            group_id=str(group.id),
                            group_name=group.name,
                            option_id=str(option.id),
                            option_name=option.name,
                            unit_price=option.additional_price,
                            quantity=quantity,
                        )
                    )
        return selections

    def confirm(self):
        """Selected add-ons and their per-unit price, once required groups are satisfied."""
        if not self.is_valid:
            names = ", ".join(group.name for group in self.missing_groups)
            raise ValidationError({"addons": [f"Choose the required options: {names}"]})
        addons = self.selected_addons()
        return addons, sum(addon.unit_price * addon.quantity for addon in addons)
