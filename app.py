# ----------------
# Importations
# ----------------
import base64
import logging

import streamlit as st

from huffreport import (MalformedResponse, SourceFile, build_report, format_ratio,
                        pivot_frame, symbol_frame)
from huffservice import ServiceError, process_file

logging.basicConfig(level=logging.INFO,
                    format="%(asctime)s | %(levelname)s | %(message)s")
log = logging.getLogger("huffreport-app")

# ------------------------
#   Streamlit App
# ------------------------
st.set_page_config(page_title="Huffman File Processor", layout="centered")
st.title("Huffman File Processor 🗃")
st.caption("Upload a file to compress or decompress it with Huffman coding and CRC checking.")

symbol_rate = st.sidebar.number_input("Symbol rate (symbols/s)", min_value=0.0, value=1.0,
                                      help="Scales the average codeword length into a bit rate.")

# ---------------------
#    Instructions
# ---------------------
st.subheader("1) Instructions")

st.markdown("""
*How to Use This Tool*

1. Choose **Encode** to compress a file or **Decode** for a `.huf` file.
2. Upload the file with the button below.
3. Click *Process File* to send it to the Huffman service.
4. Review the statistics, build steps and tree, then download the result.
""")
st.divider()
# -------------------
# file Uploading
# -------------------
st.subheader("2) File Uploader")
action = st.radio("**Choose Action**", ["Encode", "Decode"], horizontal=True)
mode = action.lower()
uploaded_file = st.file_uploader(
    "Drop a file to compress" if mode == "encode" else "Drop a .huf file to decompress",
    type=["huf"] if mode == "decode" else None,
)

if uploaded_file:
    payload = uploaded_file.getvalue()
    source = SourceFile(uploaded_file.name, len(payload))
    st.success(f"Uploaded file: {source.name} ({source.byte_size} bytes)")

    if st.button("Process File"):
        st.session_state.pop("report", None)
        try:
            with st.spinner(f"{action[:-1]}ing file..."):
                raw = process_file(source.name, payload, mode)
                st.session_state["report"] = build_report(raw, source, symbol_rate)
        except (ServiceError, MalformedResponse) as e:
            log.error(f"Processing {source.name} failed: {e}")
            st.error(f"Error: {e}")
else:
    st.session_state.pop("report", None)

# last report survives reruns triggered by the tree toggle
report = st.session_state.get("report")
if report is not None:
    st.divider()
    result = report.result

    # ------------------
    #  Result Summary
    # ------------------
    st.subheader("3) Result")
    if result.message:
        st.info(result.message)
    st.markdown(f"**File name**: {result.filename}")
    col1, col2, col3 = st.columns(3)
    col1.metric("Original Size", f"{result.original_size} bytes")
    col2.metric("Compressed Size", f"{result.compressed_size} bytes")
    col3.metric("Compression Ratio", f"{format_ratio(result.compression_ratio)}%")

    col1, col2 = st.columns(2)
    col1.metric("CRC", f"{result.crc}")
    col2.metric("CRC valid", "Valid" if result.crc_valid else "Invalid")

    st.markdown("**Encoded Data**")
    st.code(result.encoded_data or "", language=None)

    if result.download_url:
        st.link_button("Download processed file", result.download_url)

    # ----------------------
    #  Symbol Statistics
    # ----------------------
    st.divider()
    st.subheader("4) Symbol Statistics")
    if report.symbols:
        st.dataframe(symbol_frame(report.symbols), hide_index=True)
    else:
        st.info("No symbol frequencies were returned.")

    agg = report.aggregates
    col1, col2, col3 = st.columns(3)
    col1.metric("Entropy", f"{agg.entropy:.4f} bits/symbol")
    col2.metric("Average Length", f"{agg.avg_length:.4f} bits/symbol")
    col3.metric("Variance", f"{agg.variance:.4f}")
    col1, col2 = st.columns(2)
    col1.metric("Efficiency", f"{agg.efficiency * 100:.2f}%")
    col2.metric("Bit Rate", f"{agg.bit_rate:.4f} bits/s")

    # ----------------------
    #  Build Steps
    # ----------------------
    st.divider()
    st.subheader("5) Heap Build Steps")
    if report.pivot:
        st.dataframe(pivot_frame(report.pivot, report.stage_labels), hide_index=True)
    else:
        st.info("No build steps were returned.")

    # ----------------------
    #  Huffman Tree
    # ----------------------
    if result.tree_image_base64:
        st.divider()
        st.subheader("6) Huffman Tree")
        if st.toggle("Show Huffman tree"):
            try:
                st.image(base64.b64decode(result.tree_image_base64), caption="Huffman Tree")
            except ValueError as e:
                st.error(f"Could not render tree: {e}")
