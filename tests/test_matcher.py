"""
Tests for capability matching and binding.
"""

from unittest.mock import Mock

import pytest
from conftest import make_component

from halsync.core.capabilities.matcher import (
    bind_requirements,
    first_match,
    match,
    resolve,
)
from halsync.core.cluster.models import Capability, CapabilitySpec, RequiredCapability
from halsync.core.errors import NoMatchError


def capability(name, version="10", **parameters):
    return Capability(
        name=name,
        spec=CapabilitySpec(
            category="database",
            type="postgres",
            version=version,
            parameters=[{"name": k, "value": v} for k, v in parameters.items()],
        ),
    )


def requirement(name="db", version="10", bound_to=None, **parameters):
    return RequiredCapability(
        name=name,
        spec=CapabilitySpec(
            category="database",
            type="postgres",
            version=version,
            parameters=[{"name": k, "value": v} for k, v in parameters.items()],
        ),
        bound_to=bound_to,
    )


class TestMatch:
    """Test structural matching."""

    def test_one_mismatched_parameter_excludes(self):
        candidates = [
            capability("orders-db", DB_NAME="orders", DB_USER="admin"),
            capability("users-db", DB_NAME="users", DB_USER="admin"),
        ]
        required = requirement(DB_NAME="orders", DB_USER="admin").spec

        assert [c.name for c in match(required, candidates)] == ["orders-db"]

    def test_extra_parameters_on_candidate_are_fine(self):
        candidates = [capability("db", DB_NAME="orders", DB_PASSWORD="secret")]
        assert match(requirement(DB_NAME="orders").spec, candidates) == candidates

    def test_missing_parameter_on_candidate(self):
        candidates = [capability("db")]
        assert match(requirement(DB_NAME="orders").spec, candidates) == []

    def test_version_must_be_equal(self):
        candidates = [capability("old", version="9"), capability("new", version="10")]
        assert [c.name for c in match(requirement().spec, candidates)] == ["new"]

    def test_type_must_be_equal(self):
        mysql = Capability(
            name="mysql", spec=CapabilitySpec(category="database", type="mysql", version="10")
        )
        assert match(requirement().spec, [mysql]) == []

    def test_order_preserved(self):
        candidates = [capability("c"), capability("a"), capability("b")]
        assert [c.name for c in match(requirement().spec, candidates)] == ["c", "a", "b"]


class TestResolve:
    """Test choosing among matches."""

    def test_no_match(self):
        with pytest.raises(NoMatchError) as exc_info:
            resolve(requirement(), [], first_match)
        assert exc_info.value.requirement == "db"
        assert "database/postgres/10" in str(exc_info.value)

    def test_single_match_is_automatic(self):
        """The selector isn't consulted for a single match."""
        select = Mock()
        req = requirement()

        chosen = resolve(req, [capability("only")], select)

        assert chosen.name == "only"
        assert req.bound_to == "only"
        select.assert_not_called()

    def test_several_matches_use_selector(self):
        candidates = [capability("a"), capability("b")]
        select = Mock(return_value=candidates[1])
        req = requirement()

        chosen = resolve(req, candidates, select)

        assert chosen.name == "b"
        assert req.bound_to == "b"
        select.assert_called_once_with(req, candidates)

    def test_first_match(self):
        candidates = [capability("a"), capability("b")]
        assert first_match(requirement(), candidates).name == "a"


class TestBindRequirements:
    """Test binding all requirements of a component."""

    def test_binds_unbound_only(self):
        component = make_component(
            requires=[
                requirement("db").model_dump(by_alias=True),
                requirement("cache", bound_to="existing").model_dump(by_alias=True),
            ]
        )

        changed = bind_requirements(component, [capability("pg")], first_match)

        assert changed == ["db"]
        requires = component.spec.capabilities.requires
        assert requires[0].bound_to == "pg"
        assert requires[1].bound_to == "existing"

    def test_rebind(self):
        component = make_component(
            requires=[requirement("db", bound_to="old").model_dump(by_alias=True)]
        )

        changed = bind_requirements(component, [capability("pg")], first_match, rebind=True)

        assert changed == ["db"]
        assert component.spec.capabilities.requires[0].bound_to == "pg"

    def test_rebind_to_same_capability_is_no_change(self):
        component = make_component(
            requires=[requirement("db", bound_to="pg").model_dump(by_alias=True)]
        )
        assert bind_requirements(component, [capability("pg")], first_match, rebind=True) == []

    def test_unsatisfied_requirement(self):
        component = make_component(requires=[requirement("db").model_dump(by_alias=True)])
        with pytest.raises(NoMatchError):
            bind_requirements(component, [capability("old", version="9")], first_match)
