"""Tests for add-on selection rules."""

import pytest
from protean.exceptions import ValidationError
from storefront.menu.addons import AddonGroup, AddonOption
from storefront.menu.selection import AddonSelector


def _group(name, min_selections=0, max_selections=1, is_required=False, options=()):
    group = AddonGroup(
        name=name,
        min_selections=min_selections,
        max_selections=max_selections,
        is_required=is_required,
    )
    for index, (option_name, price) in enumerate(options):
        group.add_options(AddonOption(name=option_name, additional_price=price, sort_order=index))
    return group


@pytest.fixture()
def bread():
    return _group("Bread", min_selections=1, max_selections=1, is_required=True, options=[("Brioche", 0), ("Australian", 200)])


@pytest.fixture()
def extras():
    return _group("Extras", max_selections=3, options=[("Bacon", 500), ("Cheddar", 300), ("Egg", 250)])


def _option(group, name):
    return next(option for option in group.options if option.name == name)


class TestSingleChoice:
    def test_choosing_replaces_previous(self, bread):
        selector = AddonSelector([bread])
        selector.toggle(bread.id, _option(bread, "Brioche").id)
        selector.toggle(bread.id, _option(bread, "Australian").id)

        assert selector.group_count(bread.id) == 1
        assert selector.quantity_of(bread.id, _option(bread, "Australian").id) == 1

    def test_toggle_again_deselects(self, bread):
        selector = AddonSelector([bread])
        option_id = _option(bread, "Brioche").id
        selector.toggle(bread.id, option_id)
        selector.toggle(bread.id, option_id)
        assert selector.group_count(bread.id) == 0

    def test_quantity_change_replaces_and_stays_at_one(self, bread):
        selector = AddonSelector([bread])
        brioche = _option(bread, "Brioche").id
        australian = _option(bread, "Australian").id
        selector.change_quantity(bread.id, brioche, 1)

        assert selector.change_quantity(bread.id, australian, 2) is True

        assert selector.group_count(bread.id) == 1
        assert selector.quantity_of(bread.id, australian) == 1
        assert selector.quantity_of(bread.id, brioche) == 0


class TestMultiChoice:
    def test_group_cap_blocks_new_options(self, extras):
        selector = AddonSelector([extras])
        selector.change_quantity(extras.id, _option(extras, "Bacon").id, 2)
        selector.toggle(extras.id, _option(extras, "Cheddar").id)

        assert selector.toggle(extras.id, _option(extras, "Egg").id) is False
        assert selector.group_count(extras.id) == 3

    def test_quantity_cannot_pass_group_cap(self, extras):
        selector = AddonSelector([extras])
        bacon = _option(extras, "Bacon").id
        for _ in range(3):
            selector.change_quantity(extras.id, bacon, 1)
        assert selector.change_quantity(extras.id, bacon, 1) is False
        assert selector.quantity_of(extras.id, bacon) == 3

    def test_large_increment_cannot_pass_group_cap(self, extras):
        selector = AddonSelector([extras])
        bacon = _option(extras, "Bacon").id

        assert selector.change_quantity(extras.id, bacon, 5) is False
        assert selector.group_count(extras.id) == 0

    def test_increment_up_to_the_cap_is_accepted(self, extras):
        selector = AddonSelector([extras])
        selector.toggle(extras.id, _option(extras, "Egg").id)

        assert selector.change_quantity(extras.id, _option(extras, "Bacon").id, 2) is True
        assert selector.change_quantity(extras.id, _option(extras, "Cheddar").id, 1) is False
        assert selector.group_count(extras.id) == 3

    def test_decrement_to_zero_removes(self, extras):
        selector = AddonSelector([extras])
        bacon = _option(extras, "Bacon").id
        selector.change_quantity(extras.id, bacon, 1)
        selector.change_quantity(extras.id, bacon, -1)
        assert selector.quantity_of(extras.id, bacon) == 0

    def test_unit_price_sums_quantities(self, extras):
        selector = AddonSelector([extras])
        selector.change_quantity(extras.id, _option(extras, "Bacon").id, 2)
        selector.toggle(extras.id, _option(extras, "Egg").id)
        assert selector.addons_unit_price == 2 * 500 + 250


class TestConfirmation:
    def test_required_group_must_be_satisfied(self, bread, extras):
        selector = AddonSelector([bread, extras])
        assert not selector.is_valid
        assert selector.missing_groups == [bread]
        with pytest.raises(ValidationError):
            selector.confirm()

    def test_confirm_returns_selections_and_price(self, bread, extras):
        selector = AddonSelector([bread, extras])
        selector.toggle(bread.id, _option(bread, "Australian").id)
        selector.toggle(extras.id, _option(extras, "Cheddar").id)

        addons, unit_price = selector.confirm()

        assert [addon.option_name for addon in addons] == ["Australian", "Cheddar"]
        assert unit_price == 500

    def test_unavailable_option_cannot_be_chosen(self, extras):
        egg = _option(extras, "Egg")
        egg.is_available = False
        selector = AddonSelector([extras])
        with pytest.raises(ValidationError):
            selector.toggle(extras.id, egg.id)

    def test_unknown_group(self, extras):
        selector = AddonSelector([extras])
        with pytest.raises(ValidationError):
            selector.toggle("nope", _option(extras, "Egg").id)
