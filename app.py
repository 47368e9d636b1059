"""Root launcher for AI Script & Visuals.

Hosted Streamlit deployments look for ``app.py`` by default, so this file hands
off to ``streamlit_app.main``. Either command starts the same page:
- `streamlit run app.py`
- `streamlit run streamlit_app.py`
"""

from streamlit_app import main


if __name__ == "__main__":
    main()
