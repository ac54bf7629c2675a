"""
tests/core/reconcile/test_classifier.py - 스토리지 백엔드 분류 테스트
"""

import pytest

from core.reconcile.classifier import MANAGED_PROVISIONERS, is_managed
from core.reconcile.types import PROVISIONER_ANNOTATION


class TestIsManaged:
    """is_managed 테스트"""

    @pytest.mark.parametrize(
        "provisioner",
        ["kubernetes.io/aws-ebs", "ebs.csi.aws.com", "kubernetes.io/ebs.csi.aws.com"],
    )
    def test_managed_provisioners(self, provisioner):
        assert is_managed({PROVISIONER_ANNOTATION: provisioner})

    @pytest.mark.parametrize(
        "provisioner",
        ["kubernetes.io/gce-pd", "efs.csi.aws.com", "", "EBS.CSI.AWS.COM"],
    )
    def test_other_provisioners(self, provisioner):
        assert not is_managed({PROVISIONER_ANNOTATION: provisioner})

    def test_missing_annotation(self):
        assert not is_managed({"other": "ebs.csi.aws.com"})

    @pytest.mark.parametrize("annotations", [None, {}])
    def test_no_annotations(self, annotations):
        assert not is_managed(annotations)

    def test_provisioner_set(self):
        assert len(MANAGED_PROVISIONERS) == 3
