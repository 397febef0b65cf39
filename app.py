import time

import altair as alt
import streamlit as st

from solar_calculator import config as cfg
from solar_calculator.allocate import compute_formula
from solar_calculator.audit import (
    AuditInput,
    StrategyConfig,
    adjusted_monthly_kwh,
    battery_capacity_kwh,
    clamp_audit,
    clamp_strategy,
    effective_system_size,
    is_phone_valid,
)
from solar_calculator.simulate_month import run_simulation
from solar_calculator.tariff import marginal_rate, tier_breakdown
from savings_report.report import battery_advisory, complete_run
import savings_report.results_analysis as analysis

ANIMATION_SECONDS_PER_TICK = 0.07

config = cfg.default_config()

st.set_page_config(
    page_title="Solar Savings Simulator",
    page_icon="☀️",
    layout="wide"
)
st.title("Solar Savings Simulator ☀️")

tab_info, tab_audit, tab_strategy, tab_sim, tab_report = st.tabs(
    ["Info ℹ️", "Audit 📝", "Strategy ⚙️", "Simulation ⏱️", "Report 📊"]
)

with tab_info:
    st.markdown("""
# How It Works

This calculator estimates your monthly electricity bill after installing solar panels, with or without a battery.

1. **Audit**: enter your monthly usage and any loads you plan to add (EV, pool, pond).
2. **Strategy**: choose how much of your usage happens in daylight, the panels and an optional battery.
3. **Simulation**: a month of your configuration is replayed day by day.
4. **Report**: your bill before and after solar, and how much value is lost by exporting.

Exported energy is credited below the price you pay for grid energy, so using solar at home (directly or through a battery) is worth more than selling it.
    """)

with tab_audit:
    st.subheader("Phase 1: The Audit")
    col1, col2 = st.columns(2)
    with col1:
        phone = st.text_input("Phone number", value="")
        if phone and not is_phone_valid(phone):
            st.warning("Please enter a phone number with 9 to 12 digits.")
        monthly_kwh = st.number_input(
            "Monthly usage (kWh)", min_value=cfg.MIN_MONTHLY_KWH, max_value=cfg.MAX_MONTHLY_KWH,
            value=900, step=50
        )
        house_phase = st.selectbox("House phase", ["Single", "Three"])
        roof_type = st.selectbox("Roof type", ["Pitched", "Flat"])
    with col2:
        st.markdown("#### Future Plans")
        future_ev = st.checkbox("Electric vehicle")
        future_pool = st.checkbox("Swimming pool")
        future_pond = st.checkbox("Fish pond")

    audit = clamp_audit(AuditInput(
        monthly_kwh=monthly_kwh,
        future_ev=future_ev,
        future_pool=future_pool,
        future_pond=future_pond,
        phone=phone,
        house_phase=house_phase,
        roof_type=roof_type,
    ))
    usage = adjusted_monthly_kwh(audit)
    if usage != audit.monthly_kwh:
        st.info(f"Future plans increase the estimate to {usage} kWh per month.")

with tab_strategy:
    st.subheader("Phase 2: Usage Strategy")
    col1, col2 = st.columns(2)
    with col1:
        day_usage_percent = st.slider(
            "Daytime usage (%)", cfg.MIN_DAY_USAGE_PERCENT, cfg.MAX_DAY_USAGE_PERCENT, 60
        )
        panel_wattage = st.radio("Panel wattage (W)", cfg.PANEL_WATTAGES, horizontal=True)
        panel_count = st.number_input(
            "Panel count", min_value=cfg.MIN_PANEL_COUNT, max_value=cfg.MAX_PANEL_COUNT, value=12, step=1
        )
    with col2:
        has_battery = st.toggle("Add battery storage")
        battery_units = 1
        if has_battery:
            battery_units = st.slider("Battery units", cfg.MIN_BATTERY_UNITS, cfg.MAX_BATTERY_UNITS, 1)

    strategy = clamp_strategy(StrategyConfig(
        day_usage_percent=day_usage_percent,
        panel_wattage=panel_wattage,
        panel_count=panel_count,
        has_battery=has_battery,
        battery_units=battery_units,
    ))
    formula = compute_formula(audit, strategy, config)

    kpi1, kpi2, kpi3, kpi4 = st.columns(4)
    kpi1.metric("System size", f"{effective_system_size(strategy, usage):.1f} kWp")
    kpi2.metric("Solar output", f"{formula.solar_daily_kwh:.1f} kWh/day")
    kpi3.metric("Battery", f"{battery_capacity_kwh(strategy, config['battery_unit_capacity_kwh']):.0f} kWh")
    kpi4.metric("Grid purchase", f"RM {formula.monthly_cost:.0f}/month")

    run_button = st.button("Run Simulation")

# A finished run only describes the inputs it was simulated with
if "run" in st.session_state and not st.session_state["run"].matches(audit, strategy):
    st.session_state.pop("run")

with tab_sim:
    if run_button:
        st.session_state.pop("run", None)

        progress = st.progress(0, text="Day 0")
        live = st.empty()
        snapshots = []
        for snapshot in run_simulation(audit, strategy, config):
            snapshots.append(snapshot)
            progress.progress(int(snapshot["progress"]), text=f"Day {int(snapshot['day'])}")
            with live.container():
                c1, c2, c3, c4 = st.columns(4)
                c1.metric("Solar generated", f"{snapshot['solar_generated']:.0f} kWh")
                c2.metric("Grid import", f"{snapshot['grid_imported']:.0f} kWh")
                c3.metric("Self-consumed", f"{snapshot['self_consumed']:.0f} kWh")
                c4.metric("Battery", f"{snapshot['battery_fill_pct']:.0f}%")
            time.sleep(ANIMATION_SECONDS_PER_TICK)

        st.session_state["run"] = complete_run(audit, strategy, snapshots, config)
        st.success("✅ Simulation complete! See report tab.")
    elif "run" not in st.session_state:
        st.write("Run the simulation from the strategy tab.")

with tab_report:
    if "run" in st.session_state:
        run = st.session_state["run"]
        report = run.report

        col1, col2, col3 = st.columns(3)
        col1.metric("Before (TNB)", f"RM {round(report.old_bill)}")
        col2.metric("After (TNB)", f"RM {round(report.new_bill)}")
        col3.metric("Monthly savings", f"RM {report.savings_amount}", f"{report.savings_percent}% reduction")

        if battery_advisory(report, run.strategy.has_battery):
            units = analysis.suggest_battery_units(run.formula, config["battery_unit_capacity_kwh"])
            st.error(
                f"⚠️ Exporting {round(report.total_exported)} kWh back to the grid loses "
                f"RM {round(report.lost_value)}/month. {units} battery unit(s) would keep "
                f"that energy at home."
            )
            st.dataframe(analysis.battery_options(run.audit, run.strategy, config).round(2))

        frame = run.frame
        chart_data = frame.reset_index().melt(
            id_vars=["day"],
            value_vars=["solar_generated", "house_consumed", "grid_imported", "grid_exported"],
            var_name="Flow",
            value_name="Energy"
        )
        chart = (
            alt.Chart(chart_data)
            .mark_line()
            .encode(
                x=alt.X("day:Q", title="Day"),
                y=alt.Y("Energy:Q", title="Cumulative energy (kWh)"),
                color=alt.Color("Flow:N")
            )
            .properties(title="Energy over the simulated month", height=300)
        )
        st.altair_chart(chart, use_container_width=True)

        with st.expander("Tiered tariff comparison"):
            models = analysis.compare_bill_models(run.formula, config["tariff_tiers"])
            st.json(models)
            billed = models["billed_monthly_kwh"]
            st.dataframe(tier_breakdown(billed, config["tariff_tiers"]).round(3))
            st.caption(
                f"Marginal rate on the billed {billed:.0f} kWh: "
                f"RM {marginal_rate(billed, config['tariff_tiers']):.3f}/kWh"
            )

        csv = frame.to_csv(index=True).encode("utf-8")
        st.download_button(
            label="Download Simulation as CSV",
            data=csv,
            file_name="simulation.csv",
            mime="text/csv"
        )
    else:
        st.write("No results to display!")
