"""TypeScript interface / type 선언 추출."""
from __future__ import annotations
import io
import zipfile

import pytest

from schema_agent.config import settings
from interface_agent.scanner import (
    extract_fields,
    extract_interfaces,
    find_block_end,
    is_source_file,
    line_number_at,
    scan_archive,
    scan_directory,
)

USER_TS = """import { Base } from './base';

export interface User extends Base {
  id: number;
  email?: string;
  nickname: string | null;
  address: {
    city: string;
    zip: string;
  };
  readonly createdAt: Date
}

type Point = { x: number; y: number | undefined };

type Alias = { broken: string }
"""


def make_zip(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text)
    return buf.getvalue()


class TestHelpers:
    def test_line_number_at(self):
        assert line_number_at("a\nb\nc", 0) == 1
        assert line_number_at("a\nb\nc", 2) == 2
        assert line_number_at("a\nb\nc", 4) == 3

    def test_find_block_end_nested(self):
        src = "{ a: { b: 1 } }"
        assert find_block_end(src, 0) == len(src) - 1

    def test_find_block_end_unterminated(self):
        assert find_block_end("{ a: { b: 1 }", 0) is None

    def test_is_source_file(self):
        assert is_source_file("src/a.ts", [".ts"])
        assert is_source_file("src/A.TSX", [".ts", ".tsx"])
        assert not is_source_file("src/a.js", [".ts"])


class TestExtractFields:
    def test_nullable_rules(self):
        fields = {f.name: f for f in extract_fields("a: string; b?: number; c: Date | null; d: x | undefined")}
        assert not fields["a"].nullable
        assert fields["b"].nullable
        assert fields["c"].nullable
        assert fields["d"].nullable

    def test_nested_object_is_one_field(self):
        fields = extract_fields("\n  address: {\n    city: string;\n  };\n  id: number\n")
        assert [f.name for f in fields] == ["address", "id"]
        assert fields[0].type == "{ city: string; }"

    def test_non_field_members_are_skipped(self):
        fields = extract_fields("greet(): void; [key: string]: any; id: number,")
        assert [(f.name, f.type) for f in fields] == [("id", "number")]

    def test_comma_separated_members(self):
        fields = extract_fields(" a: string, b?: number ")
        assert [(f.name, f.type, f.nullable) for f in fields] == [("a", "string", False), ("b", "number", True)]

    def test_commas_inside_generics_and_callbacks_stay_in_type(self):
        fields = extract_fields("m: Map<string, number>; cb: (a: string, b: number) => void, id: number")
        assert [(f.name, f.type) for f in fields] == [
            ("m", "Map<string, number>"),
            ("cb", "(a: string, b: number) => void"),
            ("id", "number"),
        ]

    def test_separators_inside_string_literal_types(self):
        fields = extract_fields("sep: ';' | ','; id: number")
        assert [(f.name, f.type) for f in fields] == [("sep", "';' | ','"), ("id", "number")]


class TestExtractInterfaces:
    def test_declarations_and_line_numbers(self):
        found = extract_interfaces(USER_TS, "src/user.ts")
        assert [i.name for i in found] == ["User", "Point"]
        assert found[0].source == "src/user.ts:3"
        assert found[1].source == "src/user.ts:14"

    def test_interface_fields(self):
        user = extract_interfaces(USER_TS, "user.ts")[0]
        fields = {f.name: f for f in user.fields}
        assert list(fields) == ["id", "email", "nickname", "address", "createdAt"]
        assert fields["email"].nullable
        assert fields["nickname"].nullable
        assert not fields["id"].nullable
        assert fields["createdAt"].type == "Date"

    def test_type_alias_requires_semicolon(self):
        names = [i.name for i in extract_interfaces(USER_TS, "user.ts")]
        assert "Alias" not in names

    def test_type_alias_fields(self):
        point = extract_interfaces(USER_TS, "user.ts")[1]
        assert [(f.name, f.nullable) for f in point.fields] == [("x", False), ("y", True)]

    def test_interface_without_export(self):
        found = extract_interfaces("interface Thing<T> { value: T }", "t.ts")
        assert found[0].name == "Thing"
        assert found[0].fields[0].type == "T"

    def test_braces_in_string_literal_types(self):
        src = 'interface A { open: "{"; x: string }\ninterface B { close: \'}\'; id: number }\n'
        found = extract_interfaces(src, "a.ts")
        assert [i.name for i in found] == ["A", "B"]
        assert [f.name for f in found[0].fields] == ["open", "x"]
        assert [f.name for f in found[1].fields] == ["close", "id"]
        assert found[0].fields[0].type == '"{"'

    def test_comments_do_not_break_blocks(self):
        src = (
            "interface A {\n"
            "  // don't { count this\n"
            "  id: number; /* } */\n"
            "  name: string\n"
            "}\n"
        )
        found = extract_interfaces(src, "a.ts")
        assert [f.name for f in found[0].fields] == ["id", "name"]


class TestScanArchive:
    def test_only_source_files(self):
        data = make_zip({
            "repo-main/src/user.ts": USER_TS,
            "repo-main/src/readme.md": "interface Nope { a: string }",
            "repo-main/src/view.tsx": "export interface Props { title: string }",
        })
        found = scan_archive(data, exts=[".ts", ".tsx"])
        assert [i.name for i in found] == ["User", "Point", "Props"]
        assert found[2].source == "repo-main/src/view.tsx:1"

    def test_directory_entries_are_skipped(self):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("pkg/", "")
            zf.writestr("pkg/a.ts", "interface A { id: number }")
        assert [i.name for i in scan_archive(buf.getvalue(), exts=[".ts"])] == ["A"]

    def test_invalid_archive(self):
        with pytest.raises(zipfile.BadZipFile):
            scan_archive(b"not a zip", exts=[".ts"])

    def test_archive_over_size_limit(self, monkeypatch):
        data = make_zip({"a.ts": "interface A { id: number }"})
        monkeypatch.setattr(settings, "max_archive_bytes", 10)
        with pytest.raises(ValueError, match="too large"):
            scan_archive(data, exts=[".ts"])

    def test_scan_directory(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "a.ts").write_text("export interface A { id: number }", encoding="utf-8")
        (tmp_path / "b.py").write_text("interface B { id: number }", encoding="utf-8")
        found = scan_directory(tmp_path, exts=[".ts"])
        assert [(i.name, i.source) for i in found] == [("A", "src/a.ts:1")]


class TestFetchArchive:
    def test_local_zip_is_read(self, tmp_path):
        from interface_agent.repo import fetch_archive

        path = tmp_path / "web.zip"
        path.write_bytes(make_zip({"a.ts": "interface A { id: number }"}))
        assert [i.name for i in scan_archive(fetch_archive(str(path)), exts=[".ts"])] == ["A"]

    def test_github_urls(self):
        from interface_agent.repo import _github_zip_url, is_github_url

        assert is_github_url("https://github.com/acme/web")
        assert not is_github_url("https://gitlab.com/acme/web")
        assert _github_zip_url("https://github.com/acme/web.git", "main") == (
            "https://github.com/acme/web/archive/refs/heads/main.zip"
        )

    def test_unknown_source(self, tmp_path):
        from interface_agent.repo import fetch_archive

        with pytest.raises(ValueError):
            fetch_archive(str(tmp_path / "nothing-here.zip"))
