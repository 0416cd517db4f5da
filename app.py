import streamlit as st
import pandas as pd
import pydeck as pdk
import json

from access_control import can_access_plan, get_plan_sharing_status
from coverage_lib import CoverageAnalyzer, stats_to_dataframe
from plan_analytics import build_plan_export, export_file_name, generate_recommendations, summarize
from records import (
    DATA_DIR,
    flatten_database_records,
    houses_to_dataframe,
    normalize_resource,
    plan_display_name,
    plan_resources,
    resource_position,
)
from session_manager import SessionManager

# Page config must be first
st.set_page_config(page_title="Village Twin Planning", layout="wide")

DEFAULT_CENTER = (15.8497, 74.4977)  # Belgaum city center

RESOURCE_COLORS = {
    "school": [0, 191, 255],
    "water": [50, 205, 50],
    "house": [0, 255, 255],
    "road": [0, 255, 255],
    "hospital": [255, 0, 0],
    "fireStation": [255, 165, 0],
    "police": [0, 0, 255],
    "park": [34, 139, 34],
    "mall": [128, 0, 128],
    "restaurant": [255, 215, 0],
    "busStop": [255, 255, 0],
    "gasStation": [255, 165, 0],
    "parking": [128, 128, 128],
    "powerPlant": [255, 255, 0],
    "recycling": [0, 128, 0],
    "tower": [192, 192, 192],
}


# Cache the sample registry
@st.cache_data
def load_sample_json(name):
    with open(DATA_DIR / name) as f:
        return json.load(f)


def parse_uploaded_json(uploaded, expected_type):
    """Parse an uploaded JSON file; returns None when it has the wrong shape."""
    if uploaded is None:
        return None
    try:
        content = json.load(uploaded)
    except json.JSONDecodeError:
        st.error(f"{uploaded.name} is not valid JSON")
        return None
    if not isinstance(content, expected_type):
        st.error(f"Invalid file format in {uploaded.name}")
        return None
    return content


def uploaded_or_sample(uploaded, expected_type, sample_name):
    """Uploaded content (even if empty), the sample when nothing was uploaded, None if invalid."""
    if uploaded is None:
        return load_sample_json(sample_name)
    return parse_uploaded_json(uploaded, expected_type)


def get_session():
    """Session expiry state lives in Streamlit session state, one per browser session."""
    if "session_manager" not in st.session_state:
        st.session_state.session_manager = SessionManager()
    return st.session_state.session_manager


def build_map(plan, houses):
    """Map of houses and resources with their service radius."""
    resources = [normalize_resource(r) for r in plan_resources(plan)]
    placed = [r for r in resources if r.get("position")]

    resource_df = pd.DataFrame([
        {
            "name": r.get("name") or r.get("type"),
            "type": r.get("type"),
            "latitude": r["position"]["lat"],
            "longitude": r["position"]["lng"],
            "radius": r.get("radius") or 0,
            "color": RESOURCE_COLORS.get(r.get("type"), [0, 255, 255]),
        }
        for r in placed
    ])
    house_df = houses[houses["latitude"].notna() & houses["longitude"].notna()]

    layers = [
        pdk.Layer(
            "ScatterplotLayer",
            data=house_df,
            get_position=["longitude", "latitude"],
            get_color=[0, 255, 255, 160],
            get_radius=15,
            pickable=True,
            radius_min_pixels=2,
        )
    ]
    if len(resource_df) > 0:
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=resource_df[resource_df["radius"] > 0],
                get_position=["longitude", "latitude"],
                get_fill_color="color",
                get_radius="radius",
                opacity=0.15,
                stroked=True,
                filled=True,
                get_line_color="color",
                line_width_min_pixels=1,
            )
        )
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=resource_df,
                get_position=["longitude", "latitude"],
                get_fill_color="color",
                get_radius=25,
                pickable=True,
                radius_min_pixels=5,
                get_line_color=[0, 0, 0],
                stroked=True,
            )
        )

    lat, lng = resource_position({"position": plan.get("center")})
    if lat is None or lng is None:
        lat, lng = DEFAULT_CENTER
    view_state = pdk.ViewState(
        latitude=lat,
        longitude=lng,
        zoom=14,
        pitch=0,
    )
    return pdk.Deck(
        layers=layers,
        initial_view_state=view_state,
        tooltip={"html": "<b>{name}</b><br/>{type}"},
        map_provider="carto",
        map_style="road",
    )


def quality_page():
    st.title("Plan Quality Score")

    session = get_session()
    with st.sidebar:
        st.header("Identity")
        email = st.text_input("Email") or None
        user_id = st.text_input("User ID") or None
        if email or user_id:
            if not session.active and not session.expired:
                session.start()
            elif session.check():
                st.warning("Session expired due to inactivity. Please log in again.")
                email = user_id = None
            else:
                session.reset()
        else:
            session.stop()

        st.header("Data")
        plan_file = st.file_uploader("Plan (JSON object)", type="json")
        houses_file = st.file_uploader("Houses (JSON array)", type="json")
        database_files = st.file_uploader("Private databases (JSON array)", type="json",
                                          accept_multiple_files=True)

    plan = uploaded_or_sample(plan_file, dict, "sample_plan.json")
    houses = uploaded_or_sample(houses_file, list, "sample_houses.json")
    if plan is None or houses is None:
        return

    if not can_access_plan(plan, email, user_id):
        st.error("You don't have access to this plan.")
        return
    status = get_plan_sharing_status(plan, email, user_id)
    st.caption(
        f"{plan_display_name(plan)} · "
        + ("Owner" if status["isOwner"] else "Collaborator" if status["isShared"] else "Viewer")
        + ("" if status["canEdit"] else " (read-only)")
    )

    analyzer = CoverageAnalyzer()
    analyzer.add_houses(houses)
    databases = []
    for uploaded in database_files or []:
        records = parse_uploaded_json(uploaded, list)
        if records:
            databases.append({"id": uploaded.name, "name": uploaded.name, "data": records})
    analyzer.add_houses(flatten_database_records(databases))

    stats = analyzer.compute_plan_coverage(plan)
    analytics = summarize(plan_resources(plan))
    coverage = analyzer.compute_basic_coverage(plan)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Plan Quality Score", f"{analytics['infrastructureScore']:.1f} / 10")
    col2.metric("Total Population", f"{analytics['totalResidents']:,}")
    col3.metric("Average Household Size", f"{analytics['avgHouseholdSize']:.1f}")
    col4.metric("Residents Covered", f"{coverage['coverage_pct']:.1f}%",
                help="Registry residents within reach of any facility")

    st.pydeck_chart(build_map(plan, houses_to_dataframe(analyzer.houses)))

    st.markdown("### Coverage by Resource")
    if stats:
        st.dataframe(stats_to_dataframe(stats), use_container_width=True, hide_index=True)
    else:
        st.info("No resources placed in this plan.")

    st.markdown("### Recommendations")
    for rec in generate_recommendations(analytics):
        st.markdown(f"- {rec}")

    export = build_plan_export(plan, analyzer.houses)
    st.download_button(
        "Export JSON",
        data=json.dumps(export, indent=2, default=str),
        file_name=export_file_name(plan),
        mime="application/json",
    )


if __name__ == "__main__":
    quality_page()
