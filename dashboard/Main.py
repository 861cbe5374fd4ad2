import pandas as pd
import requests
import streamlit as st
from utils import api_get, api_post, get_api_url, selection_values

st.set_page_config(
    page_title="Required Plugins",
    page_icon="🧩",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.title("🧩 Install Required Plugins")

try:
    listing = api_get("/plugins/required")
except requests.RequestException as e:
    st.error(f"Could not reach {get_api_url()}: {e}")
    st.stop()

rows = listing["rows"]

col1, col2, col3 = st.columns(3)
col1.metric("Listed", len(rows))
col2.metric("Required", sum(1 for row in rows if row["required"]))
col3.metric("Not Installed", sum(1 for row in rows if row["status"] == "not_installed"))

st.divider()

if not rows:
    st.success("No plugins to install or activate.")
    st.stop()

df = pd.DataFrame(rows)
df.insert(0, "selected", False)
edited = st.data_editor(
    df[["selected", "display_name", "source_label", "type_label", "status_label", "file_path"]],
    use_container_width=True,
    hide_index=True,
    disabled=["display_name", "source_label", "type_label", "status_label", "file_path"],
    column_config={
        "selected": st.column_config.CheckboxColumn(""),
        "display_name": st.column_config.Column("Plugin"),
        "source_label": st.column_config.Column("Source"),
        "type_label": st.column_config.Column("Type"),
        "status_label": st.column_config.Column("Status"),
    },
)

selected = [rows[i] for i in edited.index[edited["selected"]]]

c1, c2 = st.columns([1, 3])
action = c1.selectbox("Bulk Actions", list(listing["bulk_actions"].keys()), format_func=listing["bulk_actions"].get)

if c2.button("Apply", disabled=not selected):
    with st.spinner("Working..."):
        try:
            outcome = api_post("/plugins/required/bulk", {"action": action, "plugin": selection_values(selected)})
        except requests.HTTPError as e:
            st.error(e.response.json().get("detail", str(e)))
            st.stop()

    kind = outcome["outcome"]
    if kind == "activation":
        message = outcome["message"].replace("<strong>", "**").replace("</strong>", "**")
        (st.error if outcome.get("failed") else st.success)(message)
    elif kind == "install_started":
        for report in outcome["results"]:
            (st.success if report["success"] else st.error)(report["message"])
    elif kind == "needs_credentials":
        st.warning(f"Connection information is required: [enter credentials]({get_api_url()}{outcome['form_url']})")
    else:
        st.info("Nothing to do for the selected plugins.")
