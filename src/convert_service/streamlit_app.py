import os
import io
import requests
import streamlit as st

API_BASE = os.getenv("CONVERT_SERVICE_API_BASE", os.getenv("API_BASE", "http://localhost:8080")).rstrip("/")


def _error_text(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return f"{resp.status_code} {resp.text}"
    return f"{resp.status_code} {data.get('message', resp.text)}"


def _fetch_conversions() -> tuple[list[dict[str, object]], str | None]:
    try:
        resp = requests.get(f"{API_BASE}/api/conversions", timeout=30)
    except requests.RequestException as e:
        return [], f"Failed to connect to API: {e}"
    if resp.status_code != 200:
        return [], f"Could not load conversions: {_error_text(resp)}"
    return list(resp.json().get("conversions", [])), None


def _convert(uploaded_file: io.BytesIO, source: str, target: str, options: dict[str, str]) -> tuple[bytes | None, str | None]:
    name = getattr(uploaded_file, "name", "upload")
    files = {"file": (name, uploaded_file.getvalue(), getattr(uploaded_file, "type", None) or "application/octet-stream")}
    data = {"from": source, "to": target, **options}
    try:
        resp = requests.post(f"{API_BASE}/api/convert", files=files, data=data, timeout=300)
    except requests.RequestException as e:
        return None, f"Failed to connect to API: {e}"
    if resp.status_code != 200:
        return None, f"Conversion failed: {_error_text(resp)}"
    return resp.content, None


def _output_name(uploaded_name: str, target: str) -> str:
    base = uploaded_name.rsplit(".", 1)[0] if "." in uploaded_name else uploaded_name
    return f"{base}.{target}"


def main() -> None:
    st.set_page_config(page_title="File Conversion Service", page_icon="🔄", layout="centered")
    st.title("🔄 File Conversion Service")
    st.caption(f"API base: {API_BASE}")

    conversions, error = _fetch_conversions()
    if error:
        st.error(error)
        return
    if not conversions:
        st.warning("No conversions are available on this server.")
        return

    labels = [f"{str(c['from']).upper()} → {str(c['to']).upper()}" for c in conversions]
    choice = st.selectbox("Conversion", range(len(conversions)), format_func=lambda i: labels[i])
    selected = conversions[choice]
    if selected.get("description"):
        st.caption(str(selected["description"]))
    requirements = selected.get("requirements") or []
    if requirements:
        st.caption("Requires: " + ", ".join(str(r) for r in requirements))  # type: ignore[union-attr]

    options: dict[str, str] = {}
    for key in selected.get("options") or []:  # type: ignore[union-attr]
        if st.checkbox(str(key).replace("_", " ").capitalize(), key=f"opt-{key}"):
            options[str(key)] = "true"

    uploaded = st.file_uploader(f"Upload a {str(selected['from']).upper()} file", type=[str(selected["from"])])

    if uploaded and st.button("Convert", type="primary"):
        with st.spinner("Converting..."):
            output, error = _convert(uploaded, str(selected["from"]), str(selected["to"]), options)
        if error:
            st.error(error)
        elif output is not None:
            st.success("Conversion complete!")
            st.download_button(
                label="Download result",
                data=output,
                file_name=_output_name(uploaded.name, str(selected["to"])),
            )


if __name__ == "__main__":
    main()
