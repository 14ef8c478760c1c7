from auh.models import PipelineChoice
from auh.resolver import resolve


def test_primary_only_when_up_and_not_explicit():
    assert resolve(True, False) is PipelineChoice.PRIMARY


def test_mirror_otherwise():
    assert resolve(False, False) is PipelineChoice.MIRROR
    assert resolve(True, True) is PipelineChoice.MIRROR
    assert resolve(False, True) is PipelineChoice.MIRROR
