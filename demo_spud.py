# demo_spud.py
import datetime, decimal, json, zlib
from spud import SpudBuilder, SpudDecoder, U16, decode_spud, encode_spud, strip_oids, to_base64

HARVEST = [
    {"variety": "Spud", "weight_g": 180, "organic": True, "tags": ["tuber", "starch"],
     "origin": {"country": "Peru", "altitude_m": 3800}},
    {"variety": "Russet", "weight_g": 310, "organic": False, "tags": ["baking"],
     "origin": {"country": "USA", "altitude_m": 700}},
    {"variety": "Yukon Gold", "weight_g": 220, "organic": True, "tags": [],
     "origin": {"country": "Canada", "altitude_m": None}},
]

def key_bytes(value):
    # bytes compact JSON spends on `"key":` for every occurrence of every key
    if isinstance(value, dict):
        return sum(len(json.dumps(k, ensure_ascii=False).encode("utf-8")) + 1 + key_bytes(v) for k, v in value.items())
    if isinstance(value, list):
        return sum(key_bytes(v) for v in value)
    return 0

def field_table_report(records):
    raw_json = json.dumps(records, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    spud_bytes = encode_spud(records)
    decoder = SpudDecoder(spud_bytes)
    header_size = len(spud_bytes) - len(decoder.body)
    print(f"{len(records)} records -> JSON {len(raw_json)} bytes, SPUD {len(spud_bytes)} bytes")
    print(f"  JSON key text: {key_bytes(records)} bytes, SPUD header: {header_size} bytes "
          f"for {len(decoder.field_names)} names")
    print(f"  zlib: JSON {len(zlib.compress(raw_json))} bytes, SPUD {len(zlib.compress(spud_bytes))} bytes")
    assert strip_oids(decode_spud(spud_bytes, want_array=True)) == records, "Decoded object mismatch!"
    return spud_bytes

def typed_record():
    builder = SpudBuilder()
    crate = builder.object()
    crate.add_value("price", decimal.Decimal("12.50")).add_value("count", U16(40))
    crate.add_value("harvested", datetime.date(2024, 9, 14))
    crate.add_value("weighed_at", datetime.datetime(2024, 9, 15, 7, 30, 5))
    crate.object("supplier", lambda s: s.add_value("name", "Andes Co-op").add_value("code", b"\x0a\x0b"))
    return builder

def run_demo():
    print("Shared field table, growing record count:")
    for copies in (1, 4, 32):
        spud_bytes = field_table_report(HARVEST * copies)
    print("Decode check: OK")
    print("SPUD base64 (first 120 chars):", to_base64(spud_bytes)[:120])

    builder = typed_record()
    print("Typed record:", builder)
    print(SpudDecoder(builder.encode()).decode(pretty=True))

if __name__ == "__main__":
    run_demo()
