import pytest

from blockhost.naming import (
    DEFAULT_OWNER_TAG,
    derive_boot_script_name,
    derive_ssh_key_name,
    derive_volume_name,
    instance_tags,
    is_owned,
    join_tags,
)

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class TestDerivedNames:
    def test_suffixes(self):
        assert derive_ssh_key_name("foo") == "foo-ssh"
        assert derive_volume_name("foo") == "foo-vol"
        assert derive_boot_script_name("foo") == "foo-stackscript"

    def test_stable_across_calls(self):
        assert {derive_ssh_key_name("mc1") for _ in range(5)} == {"mc1-ssh"}
        assert {derive_volume_name("mc1") for _ in range(5)} == {"mc1-vol"}


class TestTags:
    def test_instance_tags_owner_first(self):
        assert instance_tags("papermc") == (DEFAULT_OWNER_TAG, "papermc")

    def test_instance_tags_deduplicates(self):
        assert instance_tags("blockhost") == ("blockhost",)

    def test_custom_owner(self):
        assert instance_tags("standard", "owner") == ("owner", "standard")

    @pytest.mark.parametrize(
        ("tags", "owned"),
        [
            (("blockhost", "java"), True),
            (("java", "blockhost"), True),
            (("java",), False),
            (("blockhost-legacy",), False),
            (("my-blockhost",), False),
            ((), False),
        ],
    )
    def test_ownership_is_exact(self, tags, owned):
        assert is_owned(tags) is owned

    def test_join_puts_owner_first(self):
        assert join_tags(("standard", "owner"), "owner") == "owner,standard"

    def test_join_keeps_provider_order_and_dedupes(self):
        assert join_tags(("b", "a", "b"), "owner") == "b,a"
