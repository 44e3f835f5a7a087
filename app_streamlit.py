# app_streamlit.py
# Streamlit UI for JSON <-> SPUD conversion (dark UI)
import streamlit as st
import json, zlib, time
from spud import SpudDecoder, SpudError, encode_spud, strip_oids, to_base64

st.set_page_config(page_title="JSON → SPUD Converter", layout="wide")
st.markdown(
    """
    <style>
    .stApp { background-color: #0b0f14; color: #e6eef6; }
    .big-box { background: #0f1720; padding: 18px; border-radius: 10px; border: 1px solid rgba(255,255,255,0.03); }
    .panel-title { font-weight:700; color: #dbeafe; margin-bottom:6px; }
    .muted { color: #9fb0c9; }
    .stat { background:#071124; padding:12px; border-radius:8px; text-align:center; }
    </style>
    """, unsafe_allow_html=True
)

st.title("JSON → SPUD Converter: typed binary objects with a shared field table")
col_left, col_right = st.columns([1,1])

EXAMPLE = [
    {"id": 1, "name": "Alice Johnson", "age": 30, "city": "New York", "role": "Developer"},
    {"id": 2, "name": "Bob Smith", "age": 25, "city": "San Francisco", "role": "Designer"},
    {"id": 3, "name": "Charlie Brown", "age": 35, "city": "Chicago", "role": "Manager"}
]

with st.sidebar:
    st.markdown("### Options")
    output_mode = st.selectbox("Output view", ("Hex dump", "Base64"), index=0)
    pretty = st.checkbox("Pretty decoded JSON", value=True)
    want_array = st.checkbox("Always wrap decoded roots in an array", value=False)
    st.markdown("### Decode a file")
    uploaded = st.file_uploader("Upload .spud", type=["spud"])

def hex_dump(byts, width=16):
    lines = []
    for off in range(0, len(byts), width):
        chunk = byts[off:off+width]
        lines.append(f"{off:08x}  " + " ".join(f"{b:02x}" for b in chunk))
    return "\n".join(lines)

with col_left:
    st.markdown('<div class="big-box"><div class="panel-title">JSON Input</div>', unsafe_allow_html=True)
    json_text = st.text_area("Paste a JSON object or a list of objects", height=360, value=json.dumps(EXAMPLE, indent=2), key="json_input")
    st.markdown("</div>", unsafe_allow_html=True)

with col_right:
    st.markdown('<div class="big-box"><div class="panel-title">SPUD Output</div>', unsafe_allow_html=True)
    parsed = None
    parse_error = None
    try:
        parsed = json.loads(json_text) if json_text.strip() else None
    except json.JSONDecodeError as e:
        parse_error = str(e)

    spud_bytes = b""
    if parse_error:
        st.error(f"JSON parse error: {parse_error}")
    elif parsed is None:
        st.info("No JSON provided. Paste a JSON object or a list of objects.")
    else:
        try:
            t0 = time.time()
            spud_bytes = encode_spud(parsed)
            t1 = time.time()
        except SpudError as e:
            st.error(f"SPUD encode error: {e}")

    if spud_bytes:
        if output_mode == "Hex dump":
            spud_display = hex_dump(spud_bytes[:4096]) + ("\n..." if len(spud_bytes) > 4096 else "")
        else:
            spud_b64 = to_base64(spud_bytes)
            spud_display = spud_b64[:1000] + ("..." if len(spud_b64)>1000 else "")
        st.text_area("SPUD Output", value=spud_display, height=360, key="spud_output")
        st.download_button("Download binary (.spud)", data=spud_bytes, file_name="sample.spud", mime="application/octet-stream")

        decoder = SpudDecoder(spud_bytes)
        decoded = json.loads(decoder.decode(pretty=False, want_array=True))
        roundtrip_ok = strip_oids(decoded) == (parsed if isinstance(parsed, list) else [parsed])

        encode_time = t1 - t0
        raw_json_bytes = json.dumps(parsed, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        raw_size = len(raw_json_bytes)
        spud_size = len(spud_bytes)
        gz_raw = zlib.compress(raw_json_bytes)
        gz_spud = zlib.compress(spud_bytes)
        saved_pct = 100.0 * (1 - (spud_size / max(1, raw_size)))

        st.markdown("</div>", unsafe_allow_html=True)
        c1, c2, c3 = st.columns([1,1,1])
        c1.markdown(f"<div class='stat'><div style='font-size:20px; font-weight:700'>{raw_size}</div><div class='muted'>Compact JSON bytes</div></div>", unsafe_allow_html=True)
        c2.markdown(f"<div class='stat'><div style='font-size:20px; font-weight:700'>{spud_size}</div><div class='muted'>SPUD bytes</div></div>", unsafe_allow_html=True)
        c3.markdown(f"<div class='stat'><div style='font-size:20px; font-weight:700'>{saved_pct:.0f}%</div><div class='muted'>Saved</div></div>", unsafe_allow_html=True)

        with st.expander("Technical details (sizes, timings & field table)"):
            st.write(f"GZIP JSON bytes: {len(gz_raw)}")
            st.write(f"GZIP SPUD bytes: {len(gz_spud)}")
            st.write(f"Encode time: {encode_time:.4f}s")
            st.write(f"Field names in header: {len(decoder.field_names)}")
            st.json({f"0x{k:02X}": v for k, v in sorted(decoder.field_names.items())})
            st.write("Decode roundtrip: " + ("OK" if roundtrip_ok else "MISMATCH"))

if uploaded is not None:
    st.markdown("---")
    st.markdown("### Decoded upload")
    try:
        st.code(SpudDecoder(uploaded.getvalue()).decode(pretty=pretty, want_array=want_array), language="json")
    except SpudError as e:
        st.error(f"SPUD decode error: {e}")

st.markdown("---")
st.markdown("Prototype converter. Dates, times and decimals decode to display strings.")
