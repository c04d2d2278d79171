import pytest

from surfacekit.filtering import (
    CloudFilterBase,
    FilterBase,
    FilterError,
    FilterGroup,
    FilterManager,
    MeshFilterBase,
    MeshFilterManager,
    filter_type_name,
    register_filter,
)


@register_filter
class AddFilter(CloudFilterBase):
    def __init__(self):
        self.amount = 0

    def configure(self, config):
        if "amount" not in config:
            raise FilterError("missing amount")
        self.amount = config["amount"]

    def filter(self, data):
        return [v + self.amount for v in data]


@register_filter
class ScaleFilter(CloudFilterBase):
    def __init__(self):
        self.factor = 1

    def configure(self, config):
        self.factor = config["factor"]

    def filter(self, data):
        return [v * self.factor for v in data]


@register_filter
class FailingFilter(CloudFilterBase):
    def configure(self, config):
        pass

    def filter(self, data):
        raise FilterError("boom")


@register_filter
class MeshIdentity(MeshFilterBase):
    def configure(self, config):
        pass

    def filter(self, data):
        return data


def entry(cls, name, config=None):
    result = {"type": filter_type_name(cls), "name": name}
    if config is not None:
        result["config"] = config
    return result


def group_config(filters, continue_on_failure=False, verbosity_on=False, name="g"):
    return {
        "group_name": name,
        "continue_on_failure": continue_on_failure,
        "verbosity_on": verbosity_on,
        "filters": filters,
    }


def add_scale_entries():
    return [entry(AddFilter, "add", {"amount": 1}), entry(ScaleFilter, "scale", {"factor": 2})]


def make_group(filters, **kwargs):
    group = FilterGroup(CloudFilterBase)
    group.init(group_config(filters, **kwargs))
    return group


def test_type_name_and_instance_name_agree():
    name = filter_type_name(AddFilter)
    assert name.endswith(".AddFilter")
    assert AddFilter().name() == name


def test_register_rejects_non_filters():
    with pytest.raises(TypeError):
        register_filter(int)


def test_register_is_idempotent_for_same_class():
    assert register_filter(AddFilter) is AddFilter


def test_apply_all_filters_in_order():
    group = make_group(add_scale_entries())
    assert group.filters_loaded == ["add", "scale"]
    assert group.apply_filters([1, 2]) == [4, 6]


def test_apply_selected_filter_only():
    group = make_group(add_scale_entries())
    assert group.apply_filters([1, 2], ["scale"]) == [2, 4]


def test_selected_order_is_respected():
    group = make_group(add_scale_entries())
    stepwise = group.apply_filters(group.apply_filters([1, 2], ["scale"]), ["add"])
    assert group.apply_filters([1, 2], ["scale", "add"]) == stepwise


def test_unknown_selected_filter_raises():
    group = make_group(add_scale_entries())
    with pytest.raises(FilterError, match="not found"):
        group.apply_filters([1], ["missing"])


@pytest.mark.parametrize("missing", ["continue_on_failure", "verbosity_on", "filters"])
def test_missing_group_field_raises(missing):
    config = group_config(add_scale_entries())
    del config[missing]
    with pytest.raises(FilterError, match=missing):
        FilterGroup(CloudFilterBase).init(config)


def test_duplicate_filter_names_raise():
    filters = [entry(AddFilter, "a", {"amount": 1}), entry(ScaleFilter, "a", {"factor": 2})]
    with pytest.raises(FilterError, match="already been added"):
        make_group(filters)


def test_unknown_type_raises():
    with pytest.raises(FilterError, match="could not be created"):
        make_group([{"type": "no.such.Filter", "name": "x", "config": {}}])


def test_filter_of_other_base_class_is_rejected():
    with pytest.raises(FilterError, match="could not be created"):
        make_group([entry(MeshIdentity, "mesh")])


def test_configure_failure_raises():
    with pytest.raises(FilterError, match="failed to load configuration"):
        make_group([entry(AddFilter, "add", {})])


def test_empty_filter_list_raises():
    with pytest.raises(FilterError):
        make_group([])


def test_filters_not_a_list_raises():
    with pytest.raises(FilterError, match="not an array"):
        make_group("add")


def test_failure_stops_chain_by_default():
    group = make_group([entry(AddFilter, "add", {"amount": 1}), entry(FailingFilter, "fail")])
    with pytest.raises(FilterError, match="The filter fail failed"):
        group.apply_filters([1])


def test_continue_on_failure_skips_failed_filter():
    entries = add_scale_entries()
    with_failure = make_group(
        [entries[0], entry(FailingFilter, "fail"), entries[1]], continue_on_failure=True
    )
    without_failure = make_group(add_scale_entries())
    assert with_failure.apply_filters([1, 2]) == without_failure.apply_filters([1, 2])


def test_all_filters_failing_raises_even_when_continuing():
    group = make_group([entry(FailingFilter, "fail")], continue_on_failure=True)
    with pytest.raises(FilterError, match="fail"):
        group.apply_filters([1])


def test_non_boolean_options_disable_continue_on_failure():
    group = make_group([entry(FailingFilter, "fail")], continue_on_failure="yes")
    assert group.continue_on_failure is False
    with pytest.raises(FilterError):
        group.apply_filters([1])


def test_manager_returns_named_group():
    manager = FilterManager(CloudFilterBase)
    manager.init({"filter_groups": [group_config(add_scale_entries(), name="test_group")]})
    group = manager.get_filter_group("test_group")
    assert group.filters_loaded == ["add", "scale"]
    assert group.apply_filters([1, 2]) == manager.get_filter_group("test_group").apply_filters([1, 2])


def test_manager_empty_name_means_default():
    manager = FilterManager(CloudFilterBase)
    manager.init({"filter_groups": [group_config(add_scale_entries(), name="Default")]})
    assert manager.get_filter_group("") is manager.get_filter_group("Default")


def test_manager_unknown_group_raises():
    manager = FilterManager(CloudFilterBase)
    manager.init({"filter_groups": [group_config(add_scale_entries())]})
    with pytest.raises(FilterError, match="was not found"):
        manager.get_filter_group("other")


def test_manager_duplicate_group_raises():
    config = {"filter_groups": [group_config(add_scale_entries()), group_config(add_scale_entries())]}
    with pytest.raises(FilterError, match="already exists"):
        FilterManager(CloudFilterBase).init(config)


def test_manager_missing_groups_field_raises():
    with pytest.raises(FilterError, match="filter_groups"):
        FilterManager(CloudFilterBase).init({})


def test_manager_groups_not_array_raises():
    with pytest.raises(FilterError, match="not an array"):
        FilterManager(CloudFilterBase).init({"filter_groups": {"a": 1}})


def test_manager_bad_group_raises():
    config = {"filter_groups": [group_config([entry(AddFilter, "add", {})])]}
    with pytest.raises(FilterError, match="Failed to initialize filter group"):
        FilterManager(CloudFilterBase).init(config)


def test_mesh_filter_manager_accepts_mesh_filters_only():
    manager = MeshFilterManager()
    assert manager.base_class is MeshFilterBase
    manager.init({"filter_groups": [group_config([entry(MeshIdentity, "id")], name="Default")]})
    assert manager.get_filter_group().apply_filters("mesh") == "mesh"
    with pytest.raises(FilterError):
        MeshFilterManager().init({"filter_groups": [group_config(add_scale_entries())]})


def test_group_rejects_non_filter_base_class():
    with pytest.raises(TypeError):
        FilterGroup(dict)


def test_filter_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        FilterBase()