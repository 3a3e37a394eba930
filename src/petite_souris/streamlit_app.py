import os

import streamlit as st

from petite_souris import formats
from petite_souris.errors import ValidationError
from petite_souris.gateway_client import GatewayClient
from petite_souris.uploads import ConversionJob, JobStatus, UploadQueue

API_BASE = os.getenv("PETITE_SOURIS_API_BASE", os.getenv("API_BASE", "http://localhost:8080")).rstrip("/")
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", "10485760"))

STATUS_ICONS = {
    JobStatus.IDLE: "⏳",
    JobStatus.UPLOADING: "⬆️",
    JobStatus.CONVERTING: "🔄",
    JobStatus.SUCCESS: "✅",
    JobStatus.ERROR: "❌",
}


def _notify_converted(job: ConversionJob) -> None:
    st.toast(f"Converted {job.output_filename}", icon="✅")


def _queue() -> UploadQueue:
    if "queue" not in st.session_state:
        st.session_state["queue"] = UploadQueue(
            GatewayClient(API_BASE),
            max_file_size=MAX_FILE_SIZE,
            on_result=_notify_converted,
        )
    return st.session_state["queue"]


def _reset_uploader() -> None:
    # Bump the uploader key to clear previously uploaded files from the widget
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def _add_uploads(queue: UploadQueue, uploaded: list, output_format: str) -> None:
    errors: list[str] = []
    for f in uploaded:
        try:
            queue.add_file(f.name, f.getvalue(), output_format)
        except ValidationError as e:
            errors.append(f"{f.name}: {e}")
    st.session_state["upload_errors"] = errors


def _render_job(queue: UploadQueue, job: ConversionJob, busy: bool) -> None:
    col_name, col_status, col_actions = st.columns([4, 3, 2])
    with col_name:
        st.write(f"**{job.filename}**")
        st.caption(f"{job.input_format.upper()} → {job.output_format.upper()}")
    with col_status:
        st.write(f"{STATUS_ICONS.get(job.status, '')} {job.status}")
        if job.error:
            st.caption(f":red[{job.error}]")
    with col_actions:
        converted = queue.download_job(job.id)
        if converted is not None:
            st.download_button(
                label="Download",
                data=converted.content,
                file_name=converted.filename,
                mime=converted.content_type,
                key=f"download-{job.id}",
            )
        if st.button("Remove", key=f"remove-{job.id}", disabled=busy):
            queue.remove_job(job.id)
            st.rerun()


def main() -> None:
    st.set_page_config(page_title="Petite Souris", page_icon="📄", layout="centered")
    st.title("📄 Petite Souris")
    st.caption("Convert between PDF, Word, Text, and other document formats")

    queue = _queue()
    busy = queue.busy

    output_format = st.selectbox(
        "Convert to",
        options=formats.supported_keys(),
        index=formats.supported_keys().index("docx"),
        format_func=lambda k: formats.SUPPORTED_FORMATS[k].name,
        disabled=busy,
    )

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded = st.file_uploader(
        f"Add files (max {MAX_FILE_SIZE / 1024 / 1024:g}MB each)",
        type=[d.extension for d in formats.SUPPORTED_FORMATS.values()],
        accept_multiple_files=True,
        key=f"uploader-{st.session_state['upload_key']}",
        disabled=busy,
    )
    if uploaded:
        _add_uploads(queue, uploaded, output_format)
        _reset_uploader()
        st.rerun()

    for err in st.session_state.get("upload_errors", []):
        st.error(err)

    jobs = queue.jobs
    if not jobs:
        return

    counts = queue.counts()
    st.subheader(f"Files ({len(jobs)})")
    st.caption(
        f"{counts['success']} completed · {counts['error']} failed · {counts['pending']} pending"
    )

    col1, col2 = st.columns([1, 1])
    with col1:
        pending = counts["pending"]
        label = f"Convert {pending} {'File' if pending == 1 else 'Files'}"
        if pending and st.button(label, type="primary", disabled=busy):
            with st.status(f"Converting {pending} file(s)...", expanded=False) as status_box:
                queue.start_all()
                status_box.update(label="Conversions finished", state="complete")
            st.rerun()
    with col2:
        if st.button("Clear All", type="secondary", disabled=busy):
            queue.clear_all()
            st.session_state["upload_errors"] = []
            st.rerun()

    for job in jobs:
        _render_job(queue, job, busy)


if __name__ == "__main__":
    main()
