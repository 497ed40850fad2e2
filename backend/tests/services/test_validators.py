"""Unit tests for resource name validation."""

import pytest

from portal.core.exceptions import InvalidRequestError
from portal.services.validators import ResourceKind, is_valid_name, require_valid_name


class TestVMNames:
    """VM names: 1-64 chars, alphanumeric first, then [A-Za-z0-9_-]."""

    @pytest.mark.parametrize("name", ["a", "vm-web-01", "VM_batch_2", "0vm", "a" * 64])
    def test_accepts_valid_names(self, name):
        assert is_valid_name(name, ResourceKind.VM)

    @pytest.mark.parametrize(
        "name",
        ["", "-vm", "_vm", "vm.web", "vm web", "vm/../x", "a" * 65, "vm;rm", "vm\n"],
    )
    def test_rejects_invalid_names(self, name):
        assert not is_valid_name(name, ResourceKind.VM)

    def test_rejects_non_strings(self):
        assert not is_valid_name(None, ResourceKind.VM)
        assert not is_valid_name(42, ResourceKind.VM)
        assert not is_valid_name(["vm-a"], ResourceKind.VM)


class TestAppServiceNames:
    """App Service names: 2-60 chars of [A-Za-z0-9-], alphanumeric at both ends."""

    @pytest.mark.parametrize("name", ["ab", "my-app", "app01", "a" * 60])
    def test_accepts_valid_names(self, name):
        assert is_valid_name(name, ResourceKind.APP_SERVICE)

    @pytest.mark.parametrize("name", ["a", "-app", "app-", "my_app", "a" * 61, "app.web"])
    def test_rejects_invalid_names(self, name):
        assert not is_valid_name(name, ResourceKind.APP_SERVICE)


class TestScheduleNames:
    def test_accepts_up_to_128_chars(self):
        assert is_valid_name("s" * 128, ResourceKind.SCHEDULE)
        assert is_valid_name("Nightly_Stop-01", ResourceKind.SCHEDULE)

    def test_rejects_129_chars_and_leading_symbol(self):
        assert not is_valid_name("s" * 129, ResourceKind.SCHEDULE)
        assert not is_valid_name("_nightly", ResourceKind.SCHEDULE)


class TestRequireValidName:
    def test_returns_name_when_valid(self):
        assert require_valid_name("vm-a", ResourceKind.VM) == "vm-a"

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (ResourceKind.VM, "Invalid VM name"),
            (ResourceKind.APP_SERVICE, "Invalid App Service name"),
            (ResourceKind.SCHEDULE, "Invalid schedule name"),
        ],
    )
    def test_error_names_the_kind(self, kind, expected):
        with pytest.raises(InvalidRequestError) as exc_info:
            require_valid_name("-bad", kind)

        assert exc_info.value.error == expected
        assert exc_info.value.status_code == 400
