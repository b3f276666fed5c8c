"""
UI components for the OOH Media Planner application.
"""

import streamlit as st
from typing import Any, Dict, Optional
import logging
import pandas as pd

from business_logic.planner_controller import PlannerController
from business_logic.filter_engine import RADIUS_MIN, RADIUS_MAX, RADIUS_STEP
from config.settings import CURRENCY_OPTIONS
from data.parsers import CSV_TEMPLATE
from models.data_models import COLUMN_LABELS, BudgetSummary, Site

logger = logging.getLogger(__name__)


def format_currency(amount: float, symbol: str = "£") -> str:
    """Format an amount with the currency symbol, keeping the sign in front."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def show_notification(notification: Optional[Dict[str, Any]], fallback: str = ""):
    """Display an error handler notification with the matching Streamlit call."""
    if not notification:
        if fallback:
            st.info(fallback)
        return

    message = notification['message']
    if notification.get('action'):
        message = f"{message}\n\n{notification['action']}"

    if notification['type'] == 'error':
        st.error(f"**{notification['title']}**: {message}")
    elif notification['type'] == 'warning':
        st.warning(message)
    else:
        st.info(message)


def render_budget_summary(summary: BudgetSummary, symbol: str):
    """Total cost plus remaining or over-budget figure."""
    st.metric("Total Cost", format_currency(summary.total_cost, symbol))
    if summary.remaining_budget is not None:
        if summary.is_over_budget:
            st.error(f"Over Budget: {format_currency(summary.remaining_budget, symbol)}")
        else:
            st.success(f"Remaining: {format_currency(summary.remaining_budget, symbol)}")


def _site_label(site: Site, symbol: str) -> str:
    return f"{site.name} ({site.format}) - {format_currency(site.cost, symbol)}"


class FormatFilterPanel:
    """Format selection, radius mode and budget mode controls."""

    def __init__(self, controller: PlannerController):
        self.controller = controller

    def render(self):
        filters = self.controller.filters
        formats = self.controller.catalog.available_formats

        st.subheader("Format Selection")
        col1, col2 = st.columns(2)
        with col1:
            if st.button("Select All", key="formats_select_all"):
                self.controller.select_all_formats()
                st.rerun()
        with col2:
            if st.button("Clear", key="formats_clear"):
                filters.clear_formats()
                st.rerun()

        has_targets = bool(self.controller.target_areas.active_targets())
        radius_mode = st.checkbox(
            "Radius Mode",
            value=filters.radius_mode,
            disabled=not has_targets,
            help="Only show sites within the radius of the active target area's postcodes"
        )
        if radius_mode != filters.radius_mode:
            self.controller.set_radius_mode(radius_mode)

        budget_mode = st.checkbox(
            "Budget Mode",
            value=filters.budget_mode,
            help="Hide sites costing more than the active scenario's remaining budget"
        )
        filters.set_budget_mode(budget_mode)

        for fmt in formats:
            checked = st.checkbox(fmt, value=fmt in filters.selected_formats, key=f"format_{fmt}")
            if checked != (fmt in filters.selected_formats):
                filters.toggle_format(fmt)

        st.subheader("Radius (meters)")
        radius = st.slider(
            "Radius",
            min_value=RADIUS_MIN,
            max_value=RADIUS_MAX,
            step=RADIUS_STEP,
            value=filters.radius,
            disabled=not has_targets,
            label_visibility="collapsed"
        )
        filters.set_radius(radius)


class TargetAreaPanel:
    """Create, select and edit target areas and their postcodes."""

    def __init__(self, controller: PlannerController):
        self.controller = controller

    def render(self):
        registry = self.controller.target_areas
        st.subheader("Target Areas")

        with st.form("new_target_area", clear_on_submit=True):
            name = st.text_input("New area name", placeholder="e.g. Bristol Centre")
            if st.form_submit_button("Create Area"):
                area = registry.create_area(name)
                if area is not None:
                    registry.set_active(area.id)
                    st.rerun()
                st.warning("Enter a name for the target area.")

        if not registry.areas:
            st.caption("No target areas yet.")
            return

        options = [None] + [a.id for a in registry.areas]
        names = {a.id: a.name for a in registry.areas}
        current = registry.active_area_id if registry.active_area_id in options else None
        selected = st.selectbox(
            "Active area",
            options=options,
            index=options.index(current),
            format_func=lambda area_id: "None" if area_id is None else names[area_id]
        )
        if selected != registry.active_area_id:
            registry.set_active(selected)
            st.rerun()

        area = registry.active_area
        if area is None:
            return

        new_name = st.text_input("Area name", value=area.name, key=f"rename_{area.id}")
        if new_name != area.name:
            registry.rename_area(area.id, new_name)

        with st.form("add_target", clear_on_submit=True):
            postcode = st.text_input("Postcode", placeholder="Enter postcode")
            if st.form_submit_button("+"):
                success, message, notification = self.controller.add_target(postcode)
                if success:
                    st.rerun()
                show_notification(notification, message)

        for target in area.targets:
            col1, col2 = st.columns([4, 1])
            col1.write(target.postcode)
            if col2.button("×", key=f"remove_target_{area.id}_{target.postcode}"):
                registry.remove_target(area.id, target.postcode)
                st.rerun()

        if area.targets and st.button("Clear All", key="clear_targets"):
            self.controller.clear_active_targets()
            st.rerun()

        if st.button("Delete Area", key=f"delete_area_{area.id}"):
            registry.remove_area(area.id)
            st.rerun()


class SiteMapComponent:
    """Map of visible sites with single and multi-select adding."""

    def __init__(self, controller: PlannerController):
        self.controller = controller

    def render(self):
        visible = self.controller.visible_sites()
        symbol = self.controller.config.currency_symbol

        if not self.controller.catalog.sites:
            st.info("No sites loaded. Load site data from the Settings page.")
            return

        map_points = pd.DataFrame(
            [{'lat': s.lat, 'lon': s.lng} for s in visible],
            columns=['lat', 'lon']
        ).dropna()
        targets = pd.DataFrame(
            [{'lat': t.lat, 'lon': t.lng} for t in self.controller.target_areas.active_targets()],
            columns=['lat', 'lon']
        )
        st.map(pd.concat([map_points, targets], ignore_index=True) if not targets.empty else map_points)
        st.caption(f"{len(visible)} of {len(self.controller.catalog.sites)} sites visible")

        scenario = self.controller.active_scenario
        addable = [s for s in visible if not scenario.has_site(s.id)]
        by_id = {s.id: s for s in addable}

        selection = self.controller.selection
        multi = st.toggle("Select Multiple", value=selection.enabled)
        if multi != selection.enabled:
            selection.set_enabled(multi)

        if selection.enabled:
            chosen = st.multiselect(
                "Staged sites",
                options=list(by_id),
                default=[s.id for s in selection.sites if s.id in by_id],
                format_func=lambda site_id: _site_label(by_id[site_id], symbol)
            )
            for site_id in set(chosen) ^ {s.id for s in selection.sites}:
                site = by_id.get(site_id) or next((s for s in selection.sites if s.id == site_id), None)
                if site is not None:
                    self.controller.toggle_multi_select(site)
            if st.button(f"Add {len(selection.sites)} Selected Sites", disabled=not selection.sites):
                self.controller.add_selected_sites()
                st.rerun()
        else:
            site_id = st.selectbox(
                "Add a site",
                options=[''] + list(by_id),
                format_func=lambda i: "Add a site..." if i == '' else _site_label(by_id[i], symbol)
            )
            if st.button("Add", disabled=not site_id):
                self.controller.add_site(by_id[site_id])
                st.rerun()

        if st.button(f"Add {len(visible)} Visible Sites", disabled=not visible):
            self.controller.add_visible_sites()
            st.rerun()


class ScenarioPanel:
    """Scenario selection, budget, site list, undo and export."""

    def __init__(self, controller: PlannerController):
        self.controller = controller

    def render(self):
        store = self.controller.scenarios
        symbol = self.controller.config.currency_symbol
        st.subheader("Campaign Plan")

        ids = [s.id for s in store.scenarios]
        names = {s.id: s.name for s in store.scenarios}
        selected = st.selectbox(
            "Scenario",
            options=ids,
            index=ids.index(store.active_scenario.id),
            format_func=lambda scenario_id: names[scenario_id]
        )
        if selected != store.active_scenario_id:
            store.set_active(selected)
            st.rerun()

        scenario = store.active_scenario

        col1, col2 = st.columns(2)
        if col1.button("New Scenario"):
            store.create_scenario()
            st.rerun()
        if col2.button("Delete Scenario"):
            store.remove_scenario(scenario.id)
            st.rerun()

        new_name = st.text_input("Scenario name", value=scenario.name, key=f"scenario_name_{scenario.id}")
        if new_name != scenario.name:
            store.rename_scenario(scenario.id, new_name)

        with st.form(f"budget_{scenario.id}"):
            budget_text = st.text_input(
                "Campaign Budget",
                value="" if scenario.budget is None else f"{scenario.budget:g}",
                placeholder="e.g. 10000"
            )
            if st.form_submit_button("Set"):
                store.set_budget(scenario.id, budget_text)
                st.rerun()

        col1, col2 = st.columns(2)
        if col1.button("Undo", disabled=not store.can_undo):
            store.undo()
            st.rerun()
        if col2.button("Clear Plan", disabled=not scenario.sites):
            store.clear_scenario(scenario.id)
            st.rerun()

        if not scenario.sites:
            st.caption("No sites added yet.")
        for site in scenario.sites:
            col1, col2 = st.columns([4, 1])
            col1.markdown(
                f"**{site.site.name}**  \n{site.site.format} · {site.target_area_name}  \n"
                f"{format_currency(site.cost, symbol)}"
            )
            if col2.button("×", key=f"remove_site_{scenario.id}_{site.id}"):
                store.remove_site(scenario.id, site.id)
                st.rerun()

        render_budget_summary(store.budget_summary(), symbol)

        schedules = self.controller.schedules.schedules
        targets = [None] + [s.id for s in schedules]
        schedule_names = {s.id: s.name for s in schedules}
        export_target = st.selectbox(
            "Export to",
            options=targets,
            format_func=lambda schedule_id: "New schedule" if schedule_id is None else schedule_names[schedule_id]
        )
        if st.button("Export to Media Schedule", type="primary"):
            schedule = self.controller.export_active_scenario(export_target)
            st.success(f"Exported to schedule '{schedule.name}'")


class ScheduleEditor:
    """Editable media schedule: metadata, column order and site table."""

    def __init__(self, controller: PlannerController):
        self.controller = controller

    def render(self):
        store = self.controller.schedules
        symbol = self.controller.config.currency_symbol

        col1, col2 = st.columns([3, 1])
        with col2:
            if st.button("Add New Schedule"):
                store.add_schedule()
                st.rerun()

        if not store.schedules:
            st.info("No schedules yet. Export a scenario from the planner or add a new schedule.")
            return

        ids = [s.id for s in store.schedules]
        names = {s.id: s.name for s in store.schedules}
        with col1:
            selected = st.selectbox(
                "Schedule",
                options=ids,
                index=ids.index(store.active_schedule_id) if store.active_schedule_id in ids else 0,
                format_func=lambda schedule_id: names[schedule_id]
            )
        if selected != store.active_schedule_id:
            store.set_active(selected)
            st.rerun()

        schedule = store.active_schedule
        self._render_metadata(schedule)

        st.header(f"Media Schedule: {schedule.name}")
        with st.form(f"schedule_budget_{schedule.id}"):
            budget_text = st.text_input(
                "Budget",
                value="" if schedule.budget is None else f"{schedule.budget:g}",
                placeholder="No budget set"
            )
            if st.form_submit_button("Set"):
                store.set_budget(schedule.id, budget_text)
                st.rerun()

        self._render_column_order(schedule)
        self._render_sites(schedule, symbol)
        render_budget_summary(store.budget_summary(schedule.id), symbol)

        if st.button("Delete Schedule"):
            store.remove_schedule(schedule.id)
            st.rerun()

    def _render_metadata(self, schedule):
        col1, col2, col3, col4 = st.columns(4)
        client_name = col1.text_input("Client Name", value=schedule.client_name, key=f"client_{schedule.id}")
        campaign_name = col2.text_input("Campaign Name", value=schedule.campaign_name, key=f"campaign_{schedule.id}")
        start_date = col3.text_input("Start Date", value=schedule.start_date, placeholder="YYYY-MM-DD",
                                     key=f"start_{schedule.id}")
        end_date = col4.text_input("End Date", value=schedule.end_date, placeholder="YYYY-MM-DD",
                                   key=f"end_{schedule.id}")

        changed = (client_name, campaign_name, start_date, end_date) != (
            schedule.client_name, schedule.campaign_name, schedule.start_date, schedule.end_date)
        if changed:
            self.controller.schedules.update_metadata(
                schedule.id,
                client_name=client_name,
                campaign_name=campaign_name,
                start_date=start_date,
                end_date=end_date
            )

    def _render_column_order(self, schedule):
        store = self.controller.schedules
        with st.expander("Column Order"):
            last = len(schedule.column_order) - 1
            for position, column in enumerate(schedule.column_order):
                col1, col2, col3 = st.columns([4, 1, 1])
                col1.write(COLUMN_LABELS[column])
                if col2.button("↑", key=f"column_up_{schedule.id}_{column}", disabled=position == 0):
                    store.move_column(schedule.id, column, -1)
                    st.rerun()
                if col3.button("↓", key=f"column_down_{schedule.id}_{column}", disabled=position == last):
                    store.move_column(schedule.id, column, 1)
                    st.rerun()

    def _render_sites(self, schedule, symbol: str):
        store = self.controller.schedules
        st.subheader("Sites")

        available = store.available_sites(schedule.id, self.controller.catalog.sites)
        by_id = {s.id: s for s in available}
        col1, col2 = st.columns([4, 1])
        site_id = col1.selectbox(
            "Add a site",
            options=[''] + list(by_id),
            format_func=lambda i: "Add a site..." if i == '' else _site_label(by_id[i], symbol),
            key=f"schedule_add_{schedule.id}"
        )
        if col2.button("Add", disabled=not site_id, key=f"schedule_add_btn_{schedule.id}"):
            store.add_site_manually(schedule.id, site_id, self.controller.catalog.sites)
            st.rerun()

        rows = store.schedule_rows(schedule.id)
        if not rows:
            st.caption("No sites in this schedule.")
            return

        df = pd.DataFrame(rows, columns=schedule.column_order).rename(columns=COLUMN_LABELS)
        st.dataframe(df, use_container_width=True, hide_index=True)

        remove_id = st.selectbox(
            "Remove a site",
            options=[''] + [s.id for s in schedule.sites],
            format_func=lambda i: "Select a site..." if i == '' else next(
                s.site.name for s in schedule.sites if s.id == i),
            key=f"schedule_remove_{schedule.id}"
        )
        if st.button("Remove", disabled=not remove_id, key=f"schedule_remove_btn_{schedule.id}"):
            store.remove_site(schedule.id, remove_id)
            st.rerun()


class SettingsPanel:
    """Site data source selection, currency and saved source URL."""

    def __init__(self, controller: PlannerController):
        self.controller = controller

    def render(self):
        catalog = self.controller.catalog
        config = self.controller.config
        st.subheader("Data Source")

        source = st.radio(
            "Data Source",
            options=['api', 'csv'],
            index=0 if catalog.data_source == 'api' else 1,
            format_func=lambda s: "API / Google Sheet" if s == 'api' else "CSV Upload",
            horizontal=True,
            label_visibility="collapsed"
        )

        if source == 'api':
            url = st.text_input("Site source URL", value=config.site_source_url)
            if st.button("Load Sites", type="primary"):
                self.controller.update_settings(site_source_url=url)
                if catalog.data_source == 'csv':
                    catalog.clear_cache()
                with st.spinner("Loading sites..."):
                    success, message, notification = self.controller.load_sites_from_url(url)
                if success:
                    st.success(message)
                else:
                    show_notification(notification, message)
        else:
            uploaded = st.file_uploader("Upload Site List (CSV)", type=['csv'])
            st.download_button("Download Template", data=CSV_TEMPLATE, file_name="site-template.csv",
                               mime="text/csv")
            if uploaded is not None and st.button("Load CSV", type="primary"):
                if not config.is_valid_file_format(uploaded.name):
                    st.error("Please upload a CSV file.")
                    return
                if uploaded.size > config.get_max_file_size_bytes():
                    st.error(f"File is too large. The limit is {config.max_upload_size_mb} MB.")
                    return
                success, message, notification = self.controller.load_sites_from_csv(uploaded)
                if success:
                    st.success(message)
                else:
                    show_notification(notification, message)

        st.subheader("Currency")
        symbols = list(CURRENCY_OPTIONS)
        currency = st.selectbox(
            "Currency",
            options=symbols,
            index=symbols.index(config.currency_symbol) if config.currency_symbol in symbols else 0,
            format_func=lambda symbol: CURRENCY_OPTIONS[symbol],
            label_visibility="collapsed"
        )
        if currency != config.currency_symbol:
            self.controller.update_settings(currency_symbol=currency)
            st.rerun()

        stats = catalog.get_catalog_stats()
        with st.expander("Catalog Information"):
            st.write(f"**Sites:** {stats['total_sites']}")
            st.write(f"**Formats:** {', '.join(stats['formats']) if stats['formats'] else 'None'}")
            st.write(f"**Last updated:** {stats['last_updated'] or 'Never'}")
