"""
Shadow Studio Demo - place a cut-out object on a background and light it.
"""

import logging

import streamlit as st

from shadowgen.config import DEFAULT_LIGHT, DEFAULT_SHADOW, BlurMode, EngineConfig, ProjectionModel
from shadowgen.errors import ImageLoadError
from shadowgen.pipeline import ShadowPipeline
from shadowgen.session import ShadowSession
from shadowgen.types import LightModel, Position, PositionPreset, ShadowAppearance
from utils.image_io import EXPORT_FILENAMES, raster_to_bytes

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Page config
st.set_page_config(
    page_title="Shadow Studio",
    page_icon="◐",
    layout="wide",
)

# CSS
st.markdown("""
<style>
    .stApp {
        background: linear-gradient(135deg, #1a1a2e 0%, #16213e 100%);
    }

    h1, h2, h3 {
        color: #fff !important;
    }

    .main-title {
        font-size: 2.5rem;
        font-weight: 700;
        text-align: center;
        color: #e0e0e0;
    }

    .subtitle {
        color: #888;
        text-align: center;
        margin-bottom: 2rem;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def load_pipeline(projection: str, blur_mode: str) -> ShadowPipeline:
    config = EngineConfig.for_projection(projection, blur_mode=BlurMode(blur_mode))
    return ShadowPipeline(config)


def get_session(pipeline: ShadowPipeline) -> ShadowSession:
    """Per-browser session; the stateless pipeline is shared between users."""
    session = st.session_state.get("shadow_session")
    if session is None or session.pipeline is not pipeline:
        if session is not None:
            session.close()
        session = ShadowSession(pipeline=pipeline, max_image_size=2048)
        st.session_state["shadow_session"] = session
    return session


def sidebar_controls():
    """Render the light/shadow controls and return their values."""
    with st.sidebar:
        st.markdown("### Light")
        angle = st.slider("Angle", 0, 360, int(DEFAULT_LIGHT.angle))
        elevation = st.slider("Elevation", 0, 90, int(DEFAULT_LIGHT.elevation))
        intensity = st.slider("Intensity", 0.0, 1.0, DEFAULT_LIGHT.intensity, 0.05)

        st.markdown("---")
        st.markdown("### Shadow")
        darkness = st.slider("Contact darkness", 0.0, 1.0, DEFAULT_SHADOW.contact_darkness, 0.05)
        blur = st.slider("Max blur", 0, 50, int(DEFAULT_SHADOW.max_blur_radius))
        falloff = st.slider("Falloff distance", 10, 500, int(DEFAULT_SHADOW.falloff_distance))

        st.markdown("---")
        st.markdown("### Engine")
        projection = st.selectbox(
            "Projection",
            [m.value for m in ProjectionModel],
            format_func=lambda x: {"perspective": "Point light", "directional": "Directional offset"}[x],
        )
        blur_mode = st.selectbox(
            "Blur",
            [m.value for m in BlurMode],
            format_func=lambda x: {"uniform": "Uniform", "distance_scaled": "Distance scaled"}[x],
        )

    light = LightModel(angle=float(angle), elevation=float(elevation), intensity=float(intensity))
    shadow = ShadowAppearance(
        contact_darkness=float(darkness),
        max_blur_radius=float(blur),
        falloff_distance=float(falloff),
    )
    return light, shadow, projection, blur_mode


def main():
    st.markdown('<h1 class="main-title">Shadow Studio</h1>', unsafe_allow_html=True)
    st.markdown('<p class="subtitle">Cast a shadow for any cut-out object</p>', unsafe_allow_html=True)

    light, shadow, projection, blur_mode = sidebar_controls()
    session = get_session(load_pipeline(projection, blur_mode))

    col1, col2, col3 = st.columns(3)
    with col1:
        foreground_file = st.file_uploader("Foreground", type=["png", "jpg", "jpeg"], key="fg")
        remove_bg = st.checkbox("Remove background", value=False)
    with col2:
        background_file = st.file_uploader("Background", type=["png", "jpg", "jpeg"], key="bg")
    with col3:
        depth_file = st.file_uploader("Depth map (optional)", type=["png", "jpg", "jpeg"], key="depth")
        use_depth = st.checkbox("Use depth map", value=True, disabled=depth_file is None)

    if foreground_file is None or background_file is None:
        st.info("Upload foreground and background images to begin")
        return

    try:
        session.load_foreground(foreground_file.getvalue(), remove_background=remove_bg)
        session.load_background(background_file.getvalue())
        if depth_file is not None and use_depth:
            session.load_depth_map(depth_file.getvalue())
        else:
            session.clear_depth_map()
    except ImageLoadError as e:
        st.error(f"Failed to load images: {e}")
        logger.warning(f"Image load failed: {e}")
        return

    pos_col1, pos_col2, pos_col3 = st.columns(3)
    with pos_col1:
        preset = st.selectbox("Placement", [p.value for p in PositionPreset], index=7)
    placed = session.place(preset)
    with pos_col2:
        dx = st.number_input("Offset X", value=0, step=5)
    with pos_col3:
        dy = st.number_input("Offset Y", value=0, step=5)
    session.set_position(Position(placed.x + int(dx), placed.y + int(dy)))

    try:
        result = session.generate(light, shadow)
    except Exception as e:
        st.error(f"Shadow generation failed: {e}")
        logger.exception("Shadow generation failed")
        return

    tab_composite, tab_shadow, tab_mask = st.tabs(["Composite", "Shadow only", "Mask"])
    with tab_composite:
        st.image(result.composite.pixels, use_container_width=True)
    with tab_shadow:
        st.image(result.shadow_only.pixels, use_container_width=True)
    with tab_mask:
        st.image(result.mask_debug.pixels, use_container_width=True)

    st.markdown("---")
    dl_cols = st.columns(3)
    for col, (name, filename) in zip(dl_cols, EXPORT_FILENAMES.items()):
        with col:
            st.download_button(
                f"Download {filename}",
                raster_to_bytes(getattr(result, name)),
                filename,
                "image/png",
                use_container_width=True,
            )


if __name__ == "__main__":
    main()
