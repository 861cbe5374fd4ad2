import requests
import streamlit as st
from utils import api_get

st.set_page_config(page_title="Logs", page_icon="📜", layout="wide")

st.title("📜 Service Logs")

limit = st.slider("Lines", 20, 1000, 200)

try:
    logs = api_get("/admin/log", limit=limit)["logs"]
except requests.RequestException as e:
    st.error(f"API Error: {e}")
else:
    if logs:
        st.code("\n".join(reversed(logs)), language="log")
    else:
        st.info("No logs yet.")
