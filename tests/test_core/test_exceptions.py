"""Tests for mitomi.core.exceptions."""

import pytest

from mitomi.core.exceptions import (
    AnalysisCancelled,
    CommandNotAllowedError,
    ConfigurationError,
    CornerSampleError,
    FrameCountError,
    ImageDimensionError,
    LatticeError,
    MitomiError,
    RunFileError,
    UserAbort,
)


class TestExceptionHierarchy:
    def test_configuration_errors_inherit(self):
        for exc_cls in (FrameCountError, ImageDimensionError, CornerSampleError,
                        LatticeError, CommandNotAllowedError, RunFileError):
            assert issubclass(exc_cls, ConfigurationError)
            assert issubclass(exc_cls, MitomiError)

    def test_abort_and_cancel_are_not_configuration_errors(self):
        assert not issubclass(UserAbort, ConfigurationError)
        assert not issubclass(AnalysisCancelled, ConfigurationError)
        assert issubclass(UserAbort, MitomiError)

    def test_catch_all_with_base(self):
        with pytest.raises(MitomiError):
            raise LatticeError("degenerate")


class TestMessages:
    def test_frame_count(self):
        exc = FrameCountError("equilibrium", 3, "exactly 1")
        assert "exactly 1" in str(exc)
        assert "received 3" in str(exc)
        assert exc.received == 3
        assert exc.experiment == "equilibrium"

    def test_image_dimension_lists_shapes(self):
        exc = ImageDimensionError({"surface": (10, 10), "captured": (12, 10, 1)})
        assert "surface=(10, 10)" in str(exc)
        assert exc.shapes["captured"] == (12, 10, 1)

    def test_image_dimension_without_shapes(self):
        assert str(ImageDimensionError()) == "Image dimensions do not match"

    def test_corner_sample_names_corner(self):
        exc = CornerSampleError("collinear", corner=2)
        assert str(exc).startswith("Corner 2:")
        assert exc.corner == 2

    def test_command_not_allowed(self):
        exc = CommandNotAllowedError("flag_region", "button position")
        assert "flag_region" in str(exc)
        assert exc.stage == "button position"

    def test_run_file_error_path(self):
        exc = RunFileError("bad section", "/tmp/run.yaml")
        assert str(exc) == "/tmp/run.yaml: bad section"
        assert RunFileError("bad").path is None

    def test_user_abort(self):
        assert str(UserAbort("inclusion")) == "User aborted during inclusion review"
        assert UserAbort().stage is None

    def test_analysis_cancelled(self):
        exc = AnalysisCancelled("extraction", 5, 12)
        assert "5 of 12" in str(exc)
        assert exc.completed == 5
        assert exc.total == 12
