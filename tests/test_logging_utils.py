import logging

import numpy as np
import pytest

from topolayout.geometry import uniform_select
from topolayout.logging_utils import _safe_repr, debug_log_call
from topolayout.model import Layout, Node


def test_safe_repr_summarizes_layout_values():
    layout = Layout(nodes={"a": Node("a", x=1.0, y=2.0)}, edges={}, width=10.0, height=5.0)

    assert _safe_repr(layout) == "Layout(1 nodes, 0 edges, 10.0x5.0)"
    assert _safe_repr(np.array([[0.0, 1.0], [4.0, 2.0]])) == "ndarray(2, 2) [0..4]"
    assert _safe_repr(list(range(10))).endswith("+6 more]")
    assert "+1 more" in _safe_repr({str(i): i for i in range(5)})


def test_traced_helpers_log_at_debug(caplog):
    with caplog.at_level(logging.DEBUG, logger="topolayout.geometry"):
        assert uniform_select([1, 2, 3, 4, 5], 3) == [1, 3, 5]

    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("-> uniform_select(") for message in messages)
    assert any(message.startswith("<- uniform_select = [1, 3, 5]") for message in messages)


def test_debug_log_call_reraises_and_wraps_once(caplog):
    logger = logging.getLogger("topolayout.tests")

    def explode():
        raise ValueError("boom")

    traced = debug_log_call(logger)(explode)
    assert debug_log_call(logger)(traced) is traced

    with caplog.at_level(logging.DEBUG, logger="topolayout.tests"):
        with pytest.raises(ValueError):
            traced()

    assert any("raised" in record.getMessage() for record in caplog.records)
