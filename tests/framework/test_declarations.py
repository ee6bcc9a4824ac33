"""
Tests for weaver.framework.declarations module.

Tests cover:
- @weave type declarations
- Attaching member policies to functions, properties and events
- Same-order conflicts
- validate() declarations
- Metadata copied onto generated members
"""

import abc
from decimal import Decimal

import pytest
from annotated_types import Ge

from weaver.core.errors import ConfigurationError, UnsupportedOperationError
from weaver.framework.declarations import (
    DeclaredProperty,
    MemberPolicy,
    TypeDeclaration,
    Validate,
    copy_member_metadata,
    validate,
    weave,
)
from weaver.framework.events import Event
from weaver.framework.introspection import DECLARATIONS_ATTR, POLICIES_ATTR, VALIDATORS_ATTR, find_member
from weaver.framework.strategies import DefaultStorage, LazyStorage, UnsupportedStub, WrapperStorage


class TestTypeDeclaration:
    """Tests for @weave."""

    def test_weave_is_type_declaration(self):
        assert weave is TypeDeclaration
        assert weave().order == 0

    def test_decorator_returns_class(self):
        @weave(order=2)
        class Quote:
            pass

        assert isinstance(Quote, type)
        assert Quote.__dict__[DECLARATIONS_ATTR] == (TypeDeclaration(order=2),)

    def test_stacked_declarations(self):
        @weave()
        @weave(order=1)
        class Quote:
            pass

        assert sorted(declaration.order for declaration in Quote.__dict__[DECLARATIONS_ATTR]) == [0, 1]

    def test_only_classes(self):
        with pytest.raises(ConfigurationError):
            weave()(lambda: None)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            weave().order = 3


class TestMemberPolicyAttachment:
    """Attaching policies to members."""

    def test_function(self):
        @DefaultStorage()
        def run(self):
            pass

        assert getattr(run, POLICIES_ATTR) == (DefaultStorage(),)

    def test_property_becomes_declared_property(self):
        @DefaultStorage()
        @property
        def value(self):
            return 1

        assert isinstance(value, DeclaredProperty)
        assert getattr(value, POLICIES_ATTR) == (DefaultStorage(),)

    def test_policies_survive_setter(self):
        class Holder:
            @WrapperStorage()
            @property
            def value(self) -> int:
                return 1

            @value.setter
            def value(self, value: int) -> None:
                pass

        assert getattr(Holder.__dict__["value"], POLICIES_ATTR) == (WrapperStorage(),)

    def test_abstract_property_stays_abstract(self):
        @DefaultStorage()
        @property
        @abc.abstractmethod
        def value(self):
            pass

        assert value.__isabstractmethod__

    def test_event(self):
        event = DefaultStorage()(Event())
        assert getattr(event, POLICIES_ATTR) == (DefaultStorage(),)

    def test_multiple_orders_read_top_down(self):
        @DefaultStorage()
        @UnsupportedStub(order=1)
        def run(self):
            pass

        assert getattr(run, POLICIES_ATTR) == (DefaultStorage(), UnsupportedStub(order=1))

    def test_same_order_conflict(self):
        with pytest.raises(ConfigurationError, match="share order 0"):

            @DefaultStorage()
            @UnsupportedStub()
            def run(self):
                pass

    def test_rejects_staticmethod(self):
        with pytest.raises(ConfigurationError):
            DefaultStorage()(staticmethod(lambda: None))

    def test_rejects_plain_values(self):
        with pytest.raises(ConfigurationError, match="can only decorate"):
            DefaultStorage()(42)

    def test_policy_is_immutable(self):
        with pytest.raises(AttributeError):
            DefaultStorage().order = 1

    def test_varargs_policy_fields(self):
        policy = LazyStorage(1, "two", order=3)
        assert policy.args == (1, "two")
        assert policy.order == 3


class TestImplementDefaults:
    """Base MemberPolicy refuses every member kind."""

    def test_unsupported(self):
        class Account:
            def withdraw(self, amount: Decimal) -> Decimal:
                return amount

        with pytest.raises(UnsupportedOperationError) as exc_info:
            MemberPolicy(order=2).implement(None, find_member(Account, "withdraw"))
        assert exc_info.value.context.member == "withdraw"
        assert exc_info.value.context.order == 2


class TestCopyMemberMetadata:
    """Metadata copied from the declared member."""

    def test_copies_name_doc_signature_and_attributes(self):
        class Account:
            @DefaultStorage()
            @abc.abstractmethod
            def withdraw(self, amount: Decimal) -> Decimal:
                """Take money out."""

        Account.withdraw.audit = True
        member = find_member(Account, "withdraw")

        def body(self, *args, **kwargs):
            pass

        copy_member_metadata(body, member)
        assert body.__name__ == "withdraw"
        assert body.__qualname__.endswith("Account.withdraw")
        assert body.__doc__ == "Take money out."
        assert body.__signature__ == member.signature
        assert body.audit is True
        assert not hasattr(body, POLICIES_ATTR)
        assert not getattr(body, "__isabstractmethod__", False)

    def test_accessor_without_function(self):
        class Publisher:
            changed = Event()

        member = find_member(Publisher, "add_changed")

        def body(self, handler):
            pass

        copy_member_metadata(body, member)
        assert body.__name__ == "add_changed"
        assert body.__module__ == Publisher.__module__


class TestValidate:
    """validate() declarations."""

    def test_attaches_declaration(self):
        @validate(Ge(0), param="amount")
        def withdraw(self, amount):
            pass

        assert getattr(withdraw, VALIDATORS_ATTR) == (Validate((Ge(0),), "amount"),)

    def test_needs_constraints(self):
        with pytest.raises(ConfigurationError):
            validate()

    def test_on_property(self):
        @validate(Ge(10))
        @property
        def level(self) -> int:
            return 10

        assert isinstance(level, DeclaredProperty)
        assert getattr(level, VALIDATORS_ATTR)[0].param is None
