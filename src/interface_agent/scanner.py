"""소스 아카이브에서 TypeScript interface / type 선언을 어휘적으로 추출한다.

완전한 파서는 아니다. 선언 본문은 중괄호 깊이를 세어 찾고(중첩 객체 타입 포함, 문자열과 주석은 건너뜀),
본문은 깊이 0의 `;` `,` 줄바꿈 기준으로 잘라 `name?: type` 모양만 필드로 인정한다.
모양이 맞지 않는 줄(메서드 시그니처, 인덱스 시그니처 등)은 조용히 건너뛴다.
"""
from __future__ import annotations
import io
import logging
import re
import zipfile
from pathlib import Path
from typing import Iterable, Iterator, Optional

from schema_agent.config import settings
from schema_agent.model import InterfaceDef, InterfaceField

logger = logging.getLogger(__name__)

# [export] interface Name<T> extends Base {
INTERFACE_RE = re.compile(
    r"(?:\bexport\s+)?\binterface\s+([A-Za-z0-9_$]+)\s*(?:<[^{]*?>)?\s*(?:extends\s+[^{]+?)?\s*\{"
)
# [export] type Name<T> = { ... };
TYPE_RE = re.compile(r"(?:\bexport\s+)?\btype\s+([A-Za-z0-9_$]+)\s*(?:<[^=]*?>)?\s*=\s*\{")
TYPE_TERMINATOR_RE = re.compile(r"\s*;")

FIELD_RE = re.compile(r"^(?:readonly\s+)?([A-Za-z0-9_$]+)(\?)?\s*:\s*(.+)$", re.DOTALL)
NULL_RE = re.compile(r"\bnull\b")
UNDEFINED_RE = re.compile(r"\bundefined\b")

OPENERS = "{[(<"
CLOSERS = "}])>"
QUOTES = "\"'`"


def is_source_file(path: str, exts: Iterable[str] | None = None) -> bool:
    exts = settings.source_ext_set if exts is None else {e.lower() for e in exts}
    return Path(path).suffix.lower() in exts


def line_number_at(source: str, index: int) -> int:
    if index <= 0:
        return 1
    return source.count("\n", 0, index) + 1


def _skip_literal(text: str, start: int) -> Optional[int]:
    """start에서 문자열(', ", `) 또는 주석이 시작하면 그 끝 인덱스, 아니면 None.

    줄 주석은 줄바꿈 직전까지만 건너뛴다 (줄바꿈은 멤버 구분자).
    """
    ch = text[start]
    if ch in QUOTES:
        i = start + 1
        while i < len(text):
            if text[i] == "\\":
                i += 2
                continue
            if text[i] == ch:
                return i
            i += 1
        return len(text) - 1
    if text.startswith("//", start):
        end = text.find("\n", start)
        return (end if end != -1 else len(text)) - 1
    if text.startswith("/*", start):
        end = text.find("*/", start + 2)
        return end + 1 if end != -1 else len(text) - 1
    return None


def find_block_end(source: str, open_index: int) -> Optional[int]:
    """open_index의 '{'와 짝이 맞는 '}' 위치. 닫히지 않으면 None.

    문자열 리터럴 타입("{", '}', `...`) 안의 중괄호는 세지 않는다.
    """
    depth = 0
    i = open_index
    while i < len(source):
        ch = source[i]
        skipped = _skip_literal(source, i)
        if skipped is not None:
            i = skipped
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _split_members(block: str) -> Iterator[str]:
    # 깊이 0에서만 ; , 줄바꿈으로 자른다 (중첩 객체 타입, 제네릭 인자, 문자열은 한 덩어리로 유지)
    depth = 0
    start = 0
    i = 0
    while i < len(block):
        ch = block[i]
        skipped = _skip_literal(block, i)
        if skipped is not None:
            i = skipped
        elif ch in OPENERS:
            depth += 1
        elif ch in CLOSERS and not (ch == ">" and i > 0 and block[i - 1] == "="):
            # => 의 > 는 닫는 괄호가 아님
            depth = max(depth - 1, 0)
        elif depth == 0 and ch in ";,\n":
            yield block[start:i]
            start = i + 1
        i += 1
    yield block[start:]


def extract_fields(block: str) -> list[InterfaceField]:
    fields: list[InterfaceField] = []
    for member in _split_members(block):
        line = member.strip()
        if not line:
            continue
        m = FIELD_RE.match(line)
        if not m:
            continue
        raw_type = " ".join(m.group(3).split())
        if not raw_type:
            continue
        nullable = bool(m.group(2)) or bool(NULL_RE.search(raw_type)) or bool(UNDEFINED_RE.search(raw_type))
        fields.append(InterfaceField(name=m.group(1), type=raw_type, nullable=nullable))
    return fields


def extract_interfaces(source: str, relative_path: str) -> list[InterfaceDef]:
    found: list[tuple[int, InterfaceDef]] = []

    for regex, needs_terminator in ((INTERFACE_RE, False), (TYPE_RE, True)):
        for m in regex.finditer(source):
            open_index = m.end() - 1
            end = find_block_end(source, open_index)
            if end is None:
                continue
            if needs_terminator and not TYPE_TERMINATOR_RE.match(source, end + 1):
                continue
            line = line_number_at(source, m.start())
            found.append((m.start(), InterfaceDef(
                name=m.group(1),
                source=f"{relative_path}:{line}",
                fields=tuple(extract_fields(source[open_index + 1:end])),
            )))

    # 파일 안에서는 선언 위치 순서
    found.sort(key=lambda item: item[0])
    return [d for _, d in found]


def scan_archive(data: bytes, exts: Iterable[str] | None = None) -> list[InterfaceDef]:
    """zip 아카이브 안의 소스 파일을 순서대로 스캔한다."""
    if len(data) > settings.max_archive_bytes:
        raise ValueError(f"archive too large: {len(data)} bytes (limit {settings.max_archive_bytes})")

    interfaces: list[InterfaceDef] = []
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            path = info.filename.replace("\\", "/")
            if not is_source_file(path, exts):
                continue
            text = zf.read(info).decode("utf-8", errors="ignore")
            interfaces.extend(extract_interfaces(text, path))

    logger.info("scanned archive: %d interfaces", len(interfaces))
    return interfaces


def scan_directory(root: Path, exts: Iterable[str] | None = None) -> list[InterfaceDef]:
    interfaces: list[InterfaceDef] = []
    for f in sorted(root.rglob("*")):
        if not f.is_file():
            continue
        rel = f.relative_to(root).as_posix()
        if not is_source_file(rel, exts):
            continue
        text = f.read_text(encoding="utf-8", errors="ignore")
        interfaces.extend(extract_interfaces(text, rel))
    return interfaces
