"""
app.py - minimal entrypoint for Streamlit app

Keep this file tiny so streamlit can import it without side-effects.
Run the app with:
    streamlit run app.py

This module simply delegates to ridesplit.ui.dashboard.main().

"""
import os
import json as _json

import streamlit as _st

# On Streamlit Cloud, transfer secrets to env vars so the store can read them
try:
    _secrets = dict(_st.secrets)
except Exception:
    # no secrets.toml when running locally
    _secrets = {}
for _k in ("GOOGLE_SHEET_ID", "GOOGLE_SERVICE_ACCOUNT_JSON", "GOOGLE_SERVICE_ACCOUNT_FILE", "RIDESPLIT_DATA_FILE"):
    if _secrets.get(_k) and _k not in os.environ:
        os.environ[_k] = str(_secrets[_k])
# Also support the standard table-style service account secret:
# [gcp_service_account] ...fields...
if "GOOGLE_SERVICE_ACCOUNT_JSON" not in os.environ and _secrets.get("gcp_service_account"):
    os.environ["GOOGLE_SERVICE_ACCOUNT_JSON"] = _json.dumps(dict(_secrets["gcp_service_account"]))

from ridesplit.ui import dashboard


def main():
    dashboard.main()


if __name__ == "__main__":
    main()
