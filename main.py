"""
Main entry point for the OOH Media Planner application.
"""
import logging
import streamlit as st

from config.settings import config_manager
from business_logic.planner_controller import PlannerController
from ui.components import (
    FormatFilterPanel,
    TargetAreaPanel,
    SiteMapComponent,
    ScenarioPanel,
    ScheduleEditor,
    SettingsPanel,
)

# Set up logging
logger = logging.getLogger(__name__)


def get_controller() -> PlannerController:
    """Create the planner state once per session from persisted storage."""
    if 'planner' not in st.session_state:
        config = config_manager.load_config()
        st.session_state['planner'] = PlannerController(config)
        logger.info("Planner state initialized from storage")
    return st.session_state['planner']


def render_map_page(controller: PlannerController):
    left, center, right = st.columns([1, 2.5, 1.3])
    with left:
        FormatFilterPanel(controller).render()
        TargetAreaPanel(controller).render()
    with center:
        SiteMapComponent(controller).render()
    with right:
        ScenarioPanel(controller).render()


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="OOH Media Planner",
        page_icon="🗺️",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    try:
        controller = get_controller()
    except OSError as e:
        st.error(f"❌ Cannot open planner storage: {str(e)}")
        st.info("Check PLANNER_STORAGE_DIR points to a writable directory.")
        st.stop()

    page = st.sidebar.radio("Navigation", ["Map Planner", "Media Schedule", "Settings"])

    if page == "Map Planner":
        st.title("OOH Map Planner")
        render_map_page(controller)
    elif page == "Media Schedule":
        st.title("Media Schedule")
        ScheduleEditor(controller).render()
    else:
        st.title("Settings")
        SettingsPanel(controller).render()


if __name__ == "__main__":
    main()
