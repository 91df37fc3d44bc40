from __future__ import annotations

import base64

import streamlit as st

from pdfcompose.adapters.pymupdf_adapter import PyMuPdfAdapter
from pdfcompose.domain.errors import PdfComposeError
from pdfcompose.domain.models import CandidateFile, ExtractRange, Merge, OperationSpec, SplitAll
from pdfcompose.infrastructure.config import AppConfig
from pdfcompose.infrastructure.logging_config import configure_logging
from pdfcompose.services.session_controller import SessionController

OPERATIONS = ("merge", "split", "extract")


def _init_state(config: AppConfig) -> None:
    for operation in OPERATIONS:
        st.session_state.setdefault(f"{operation}_session", SessionController.build(config))
        st.session_state.setdefault(f"{operation}_uploader_token", 0)
    st.session_state.setdefault("thumbnail_cache", {})


def _session(operation: str) -> SessionController:
    return st.session_state[f"{operation}_session"]


def _thumbnail_html(doc_id: str, pdf_bytes: bytes) -> str:
    cache: dict[str, bytes] = st.session_state.thumbnail_cache
    if doc_id not in cache:
        cache[doc_id] = PyMuPdfAdapter().render_page_thumbnail(pdf_bytes, 0, zoom=0.25)
    encoded = base64.b64encode(cache[doc_id]).decode("ascii")
    return (
        "<div style='border:1px solid rgba(120,120,120,0.35);"
        " border-radius:8px;padding:4px;'>"
        f"<img src='data:image/png;base64,{encoded}' "
        "style='width:100%;height:auto;border-radius:4px;'/>"
        "</div>"
    )


def _upload(operation: str, config: AppConfig, multiple: bool) -> None:
    session = _session(operation)
    token_key = f"{operation}_uploader_token"
    uploaded = st.file_uploader(
        f"Choose PDF file{'s' if multiple else ''} (max {config.max_file_size_mb} MB each)",
        type=["pdf"],
        accept_multiple_files=multiple,
        key=f"{operation}_upload_{st.session_state[token_key]}",
    )
    if not uploaded:
        return

    items = uploaded if multiple else [uploaded]
    candidates = [
        CandidateFile(name=item.name, content=item.getvalue(), mime_type=item.type)
        for item in items
    ]
    previous = [view.doc_id for view in session.inputs]
    try:
        if multiple:
            session.add_files(candidates)
        else:
            session.replace_files(candidates)
    except PdfComposeError as exc:
        st.error(exc.message)
        return
    if not multiple:
        for doc_id in previous:
            st.session_state.thumbnail_cache.pop(doc_id, None)
    st.session_state[token_key] += 1
    st.rerun()


def _render_inputs(operation: str, reorderable: bool) -> None:
    session = _session(operation)
    views = session.inputs
    if not views:
        st.info("No PDFs loaded yet.")
        return

    documents = {item.doc_id: item for item in session.registry.snapshot()}
    st.markdown(f"**Selected files ({len(views)})**")
    for view in views:
        preview_col, name_col, action_col = st.columns([1, 5, 3])
        with preview_col:
            try:
                st.markdown(
                    _thumbnail_html(view.doc_id, documents[view.doc_id].content),
                    unsafe_allow_html=True,
                )
            except PdfComposeError:
                st.caption("No preview")
        with name_col:
            marker = " :red[(error)]" if view.has_error else ""
            st.markdown(f"{view.position}. {view.name}{marker}")
            st.caption(f"{round(view.size_bytes / (1024 * 1024), 2)} MB")
        with action_col:
            up_col, down_col, remove_col = st.columns(3)
            if reorderable and up_col.button("↑", key=f"{operation}_up_{view.doc_id}"):
                session.move_input_up(view.doc_id)
                st.rerun()
            if reorderable and down_col.button("↓", key=f"{operation}_down_{view.doc_id}"):
                session.move_input_down(view.doc_id)
                st.rerun()
            if remove_col.button("✕", key=f"{operation}_remove_{view.doc_id}"):
                session.remove_input(view.doc_id)
                st.session_state.thumbnail_cache.pop(view.doc_id, None)
                st.rerun()


def _run(operation: str, spec: OperationSpec, label: str) -> None:
    session = _session(operation)
    if st.button(label, type="primary", disabled=session.processing, key=f"{operation}_run"):
        try:
            with st.spinner("Processing..."):
                session.submit(spec)
        except PdfComposeError as exc:
            st.error(exc.message)


def _render_results(operation: str) -> None:
    session = _session(operation)
    for report in session.errors:
        st.error(report.message)

    for index, artifact in enumerate(session.artifacts):
        name = st.text_input(
            "File name",
            value=artifact.name,
            key=f"{operation}_artifact_name_{artifact.handle}",
        )
        if name != artifact.name:
            session.rename_artifact(index, name)
        st.download_button(
            f"Download {artifact.name}",
            data=artifact.read(),
            file_name=artifact.name,
            mime=artifact.media_type,
            key=f"{operation}_download_{artifact.handle}",
            use_container_width=True,
        )

    result = session.result
    if result is not None and result.succeeded:
        st.success(f"Done: {len(result.outputs)} file(s), {result.total_pages} page(s).")


def _clear_button(operation: str) -> None:
    session = _session(operation)
    if st.button("Clear", key=f"{operation}_clear"):
        for view in session.inputs:
            st.session_state.thumbnail_cache.pop(view.doc_id, None)
        session.clear()
        st.rerun()


def _merge_tab(config: AppConfig) -> None:
    st.subheader("Merge PDFs", anchor=False)
    st.caption("Pages are merged in list order. Use the arrows to reorder.")
    _upload("merge", config, multiple=True)
    _render_inputs("merge", reorderable=True)
    _run("merge", Merge(), "Merge PDFs")
    _render_results("merge")
    _clear_button("merge")


def _split_tab(config: AppConfig) -> None:
    st.subheader("Split PDF", anchor=False)
    st.caption("Every page becomes its own PDF, bundled as a ZIP.")
    _upload("split", config, multiple=False)
    _render_inputs("split", reorderable=False)
    _run("split", SplitAll(), "Split PDF")
    _render_results("split")
    _clear_button("split")


def _extract_tab(config: AppConfig) -> None:
    st.subheader("Extract PDF", anchor=False)
    st.caption("Copy a page range into a new PDF.")
    _upload("extract", config, multiple=False)
    _render_inputs("extract", reorderable=False)
    start_col, end_col = st.columns(2)
    start = start_col.text_input("Start page", key="extract_start", placeholder="Start Page")
    end = end_col.text_input("End page", key="extract_end", placeholder="End Page")
    _run("extract", ExtractRange(start=start, end=end), "Extract PDF")
    _render_results("extract")
    _clear_button("extract")


def main() -> None:
    config = AppConfig()
    configure_logging(config.log_level)
    st.set_page_config(page_title="PDF Compose", layout="centered")
    st.title("PDF Compose", anchor=False)
    _init_state(config)

    tab_merge, tab_split, tab_extract = st.tabs(["Merge", "Split", "Extract"])
    with tab_merge:
        _merge_tab(config)
    with tab_split:
        _split_tab(config)
    with tab_extract:
        _extract_tab(config)


if __name__ == "__main__":
    main()
