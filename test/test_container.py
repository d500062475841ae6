# test/test_container.py
import numpy as np
import pytest

from olscapture.core import (
    CaptureMeta,
    InvalidIndex,
    NOT_AVAILABLE,
    WaveformContainer,
    WaveformSnapshot,
)


def _snap(values=(1, 2, 3, 4), timestamps=(0, 5, 12, 20), trigger_index=NOT_AVAILABLE,
          sample_rate=1000) -> WaveformSnapshot:
    return WaveformSnapshot(
        values=np.array(values, dtype=np.uint32),
        timestamps=np.array(timestamps, dtype=np.int64),
        trigger_index=trigger_index,
        meta=CaptureMeta(sample_rate=sample_rate, channels=8, enabled_channels=0xFF),
        absolute_length=25,
    )


class TestEmptyContainer:

    def test_queries_without_snapshot(self):
        c = WaveformContainer()

        assert not c.has_captured_data
        assert c.snapshot is None
        assert c.values.size == 0
        assert c.timestamps.size == 0
        assert c.sample_rate == NOT_AVAILABLE
        assert c.channels == NOT_AVAILABLE
        assert c.enabled_channels == NOT_AVAILABLE
        assert c.absolute_length == NOT_AVAILABLE
        assert c.trigger_index == NOT_AVAILABLE
        assert c.trigger_time_position == NOT_AVAILABLE
        assert not c.has_trigger_data
        assert not c.has_timing_data
        assert c.get_sample_index(10) == NOT_AVAILABLE
        assert c.get_decode_range() is None

    def test_calculate_time_without_snapshot_is_identity(self):
        assert WaveformContainer().calculate_time(1234) == 1234

    def test_annotation_queries_without_data(self):
        c = WaveformContainer()
        assert c.get_channel_annotation(0, 5) is None
        assert list(c.get_channel_annotations(31, 0, 100)) == []

    def test_cursor_timestamp_without_snapshot(self):
        c = WaveformContainer()
        c.set_cursor_position(0, 1)
        assert c.get_cursor_timestamp(0) is None
        assert c.get_cursor_time_value(0) is None


class TestSnapshotReplacement:

    def test_forwarded_queries(self):
        c = WaveformContainer(_snap(trigger_index=2))

        assert c.has_captured_data
        assert c.values.tolist() == [1, 2, 3, 4]
        assert c.sample_rate == 1000
        assert c.channels == 8
        assert c.enabled_channels == 0xFF
        assert c.absolute_length == 25
        assert c.trigger_index == 2
        assert c.trigger_time_position == 12
        assert c.get_sample_index(13) == 2

    def test_replace_clears_annotations(self):
        c = WaveformContainer(_snap())
        c.add_channel_annotation(0, 0, 100, "uart")
        assert c.get_channel_annotation(0, 50) is not None

        c.replace_snapshot(_snap(values=(9, 8, 7, 6)))

        for idx in (0, 50, 100):
            assert c.get_channel_annotation(0, idx) is None
        assert len(c.annotations) == 0

    def test_replace_keeps_cursors_and_labels(self):
        c = WaveformContainer(_snap())
        c.set_cursor_position(3, 2)
        c.set_cursors_enabled(True)
        c.set_channel_label(5, "SCL")

        c.replace_snapshot(_snap(values=(9, 8, 7, 6)))

        assert c.get_cursor_position(3) == 2
        assert c.cursors_enabled
        assert c.get_channel_label(5) == "SCL"

    def test_replace_with_none_clears_data(self):
        c = WaveformContainer(_snap())
        c.replace_snapshot(None)
        assert not c.has_captured_data

    def test_replace_rejects_other_types(self):
        with pytest.raises(TypeError):
            WaveformContainer().replace_snapshot("not a snapshot")  # type: ignore[arg-type]


class TestTime:

    def test_calculate_time_relative_to_trigger(self):
        c = WaveformContainer(_snap(trigger_index=1))
        assert c.calculate_time(5) == 0
        assert c.calculate_time(20) == 15
        assert c.calculate_time(0) == -5

    def test_calculate_time_without_trigger(self):
        c = WaveformContainer(_snap())
        assert c.calculate_time(20) == 20

    def test_cursor_timestamp_and_time_value(self):
        c = WaveformContainer(_snap(trigger_index=1))
        c.set_cursor_position(0, 3)

        assert c.get_cursor_timestamp(0) == 20
        assert c.get_cursor_time_value(0) == pytest.approx((20 - 5) / 1000.0)

    def test_cursor_timestamp_unset_or_out_of_range(self):
        c = WaveformContainer(_snap())
        assert c.get_cursor_timestamp(1) is None
        c.set_cursor_position(1, 4)  # == N, points past the last transition
        assert c.get_cursor_timestamp(1) is None

    def test_cursor_time_value_needs_sample_rate(self):
        c = WaveformContainer(_snap(sample_rate=NOT_AVAILABLE))
        c.set_cursor_position(0, 1)
        assert c.get_cursor_timestamp(0) == 5
        assert c.get_cursor_time_value(0) is None


class TestCursors:

    @pytest.mark.parametrize("idx", [-1, 10])
    def test_cursor_bounds_fail(self, idx):
        c = WaveformContainer()
        with pytest.raises(InvalidIndex):
            c.set_cursor_position(idx, 0)
        with pytest.raises(InvalidIndex):
            c.get_cursor_position(idx)
        with pytest.raises(InvalidIndex):
            c.is_cursor_position_set(idx)

    @pytest.mark.parametrize("idx", range(10))
    def test_cursor_bounds_ok(self, idx):
        c = WaveformContainer()
        c.set_cursor_position(idx, idx * 2)
        assert c.get_cursor_position(idx) == idx * 2

    def test_zero_is_a_set_position(self):
        c = WaveformContainer()
        assert not c.is_cursor_position_set(0)
        assert c.get_cursor_position(0) is None

        c.set_cursor_position(0, 0)
        assert c.is_cursor_position_set(0)
        assert c.get_cursor_position(0) == 0

        c.clear_cursor_position(0)
        assert not c.is_cursor_position_set(0)

    def test_negative_position_is_rejected(self):
        c = WaveformContainer()
        c.set_cursor_position(0, 3)
        with pytest.raises(ValueError):
            c.set_cursor_position(0, -5)
        assert c.get_cursor_position(0) == 3

    def test_cursor_positions_is_a_copy(self):
        c = WaveformContainer()
        positions = c.cursor_positions
        assert positions == (None,) * 10
        c.set_cursor_position(2, 7)
        assert positions[2] is None
        assert c.cursor_positions[2] == 7


class TestChannelLabels:

    def test_default_labels_are_empty(self):
        c = WaveformContainer()
        assert c.channel_labels == ("",) * 32
        assert not c.is_channel_label_set(0)

    def test_set_get_label(self):
        c = WaveformContainer()
        c.set_channel_label(31, "MISO")
        assert c.get_channel_label(31) == "MISO"
        assert c.is_channel_label_set(31)

        c.set_channel_label(31, "   ")
        assert not c.is_channel_label_set(31)

        c.set_channel_label(31, None)
        assert c.get_channel_label(31) == ""

    @pytest.mark.parametrize("idx", [-1, 32])
    def test_label_bounds(self, idx):
        c = WaveformContainer()
        with pytest.raises(InvalidIndex):
            c.set_channel_label(idx, "x")
        with pytest.raises(InvalidIndex):
            c.get_channel_label(idx)


class TestAnnotations:

    @pytest.mark.parametrize("channel", [0, 31])
    def test_channel_bounds_ok(self, channel):
        c = WaveformContainer(_snap())
        c.add_channel_annotation(channel, 2, 4, {"byte": 0x55})
        assert c.get_channel_annotation(channel, 3).data == {"byte": 0x55}
        assert len(list(c.get_channel_annotations(channel, 0, 10))) == 1
        c.clear_channel_annotations(channel)
        assert c.get_channel_annotation(channel, 3) is None

    def test_channel_bounds_fail(self):
        c = WaveformContainer(_snap())
        with pytest.raises(InvalidIndex):
            c.add_channel_annotation(32, 0, 1, None)
        with pytest.raises(InvalidIndex):
            c.clear_channel_annotations(32)
        with pytest.raises(InvalidIndex):
            c.get_channel_annotation(32, 0)
        with pytest.raises(InvalidIndex):
            c.get_channel_annotations(32, 0, 1)


class TestDecodeRange:

    def test_whole_capture_without_cursors(self):
        c = WaveformContainer(_snap())
        c.set_cursor_position(0, 1)
        assert c.get_decode_range() == (0, 3)

    def test_cursors_narrow_the_range(self):
        c = WaveformContainer(_snap(values=range(6), timestamps=(0, 5, 12, 20, 30, 40)))
        c.set_cursors_enabled(True)
        c.set_cursor_position(0, 2)
        c.set_cursor_position(1, 3)
        assert c.get_decode_range() == (1, 4)

    def test_unset_cursors_fall_back_to_bounds(self):
        c = WaveformContainer(_snap())
        c.set_cursors_enabled(True)
        assert c.get_decode_range() == (0, 3)

        c.set_cursor_position(0, 0)
        c.set_cursor_position(1, 3)
        assert c.get_decode_range() == (0, 3)
