"""Hypothesis strategies for property-based testing."""

from hypothesis import strategies as st

from vidstage.models.request import ColorAdjustment, PipelineOptions

durations = st.floats(min_value=0.01, max_value=7200.0, allow_nan=False, allow_infinity=False)


@st.composite
def generate_color_adjustment(draw):
    """Generate a valid ColorAdjustment."""
    return ColorAdjustment(
        brightness=draw(st.floats(min_value=-1.0, max_value=1.0)),
        contrast=draw(st.floats(min_value=-2.0, max_value=2.0)),
        saturation=draw(st.floats(min_value=0.0, max_value=3.0)),
    )


@st.composite
def generate_pipeline_options(draw):
    """Generate valid PipelineOptions with any subset of stages selected."""
    pitch = draw(st.none() | st.floats(min_value=0.25, max_value=4.0))
    rotation = draw(st.none() | st.floats(min_value=-720.0, max_value=720.0))
    color = draw(st.none() | generate_color_adjustment())
    return PipelineOptions(
        pitch_factor=pitch,
        rotation_degrees=rotation,
        color_adjustment=color,
        override_audio=draw(st.booleans()),
    )
