from csv_codec.normalize import decode_text, grid_report, import_csv_bytes


def test_decode_strips_utf8_bom():
    text, report = decode_text(b"\xef\xbb\xbfa,b\n1,2\n")
    assert text == "a,b\n1,2\n"
    assert report["encoding"]["decode_used"] == "utf-8-sig"
    assert report["newlines"]["changed"] is False


def test_decode_normalizes_newlines():
    text, report = decode_text(b"a,b\r\n1,2\r3,4")
    assert text == "a,b\n1,2\n3,4"
    assert report["newlines"]["before"] == {"crlf": 1, "cr": 1, "lf": 1}
    assert report["newlines"]["changed"] is True


def test_decode_empty_bytes():
    text, report = decode_text(b"")
    assert text == ""
    assert report["encoding"]["decode_fallback"] is False


def test_grid_report_lists_padded_rows():
    grid, summary, warnings = grid_report("a,b,c\nd,e\nf")
    assert grid == [["a", "b", "c"], ["d", "e", ""], ["f", "", ""]]
    assert summary == {"rows": 3, "columns": 3, "short_rows_padded": 2}
    assert warnings[0] == {
        "row": 2,
        "column": None,
        "issue": "row_too_short",
        "value": "2",
        "action": "padded_to_3",
    }


def test_grid_report_rectangular_input_has_no_warnings():
    _, summary, warnings = grid_report("a,b\nc,d")
    assert summary["short_rows_padded"] == 0
    assert warnings == []


def test_import_csv_bytes_envelope():
    result = import_csv_bytes(b'name,note\r\nAnn,"hi, there"\r\n')
    assert result["cells"] == [["name", "note"], ["Ann", "hi, there"], ["", ""]]
    assert result["report"]["summary"]["rows"] == 3
    assert "encoding" in result["report"]["normalizations"]
