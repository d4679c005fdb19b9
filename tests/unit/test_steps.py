import pytest

from webprovision.errors import UnknownStepError
from webprovision.steps import STEPS, get_step, select_steps, step_names


def test_canonical_order():
    assert step_names() == [
        "configure-server",
        "install-nginx",
        "install-docker",
        "install-certbot",
    ]


def test_every_step_has_a_yaml_playbook():
    for step in STEPS:
        assert step.playbook == f"{step.name}.yml"


def test_get_step():
    assert get_step("install-docker").playbook == "install-docker.yml"


def test_get_unknown_step():
    with pytest.raises(UnknownStepError, match="install-apache"):
        get_step("install-apache")


class TestSelectSteps:
    def test_all_by_default(self):
        assert select_steps() == list(STEPS)

    def test_only_keeps_canonical_order(self):
        selected = select_steps(only=["install-certbot", "configure-server"])

        assert [s.name for s in selected] == ["configure-server", "install-certbot"]

    def test_only_ignores_duplicates(self):
        selected = select_steps(only=["install-nginx", "install-nginx"])

        assert [s.name for s in selected] == ["install-nginx"]

    def test_start_at(self):
        selected = select_steps(start_at="install-docker")

        assert [s.name for s in selected] == ["install-docker", "install-certbot"]

    def test_unknown_name(self):
        with pytest.raises(UnknownStepError):
            select_steps(only=["install-nginx", "bogus"])

    def test_only_and_start_at_are_exclusive(self):
        with pytest.raises(ValueError, match="mutually exclusive"):
            select_steps(only=["install-nginx"], start_at="install-docker")
