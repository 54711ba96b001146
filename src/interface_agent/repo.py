from __future__ import annotations

import re
from pathlib import Path
from urllib.error import URLError
from urllib.request import Request, urlopen

from schema_agent.config import settings


class ArchiveDownloadError(RuntimeError):
    """GitHub 아카이브를 main / master 어느 쪽으로도 받지 못함."""


_GH_RE = re.compile(r"^https?://github\.com/([^/]+)/([^/]+)(?:/|$)")


def is_github_url(s: str) -> bool:
    return bool(_GH_RE.match(s.strip()))


def _github_zip_url(repo_url: str, ref: str) -> str:
    """GitHub 소스 아카이브 URL 패턴 사용"""
    m = _GH_RE.match(repo_url.strip())
    if not m:
        raise ValueError("Not a GitHub repository URL")
    owner, repo = m.group(1), m.group(2)
    if repo.endswith(".git"):
        repo = repo[:-4]
    return f"https://github.com/{owner}/{repo}/archive/refs/heads/{ref}.zip"


def _download(url: str, token: str | None = None) -> bytes:
    headers = {"User-Agent": "schema-agent", "Accept": "application/octet-stream"}
    if token:
        headers["Authorization"] = f"token {token}"
    req = Request(url, headers=headers)
    with urlopen(req, timeout=60) as resp:
        # 제한보다 1바이트 더 읽어서 초과 여부만 판단
        data = resp.read(settings.max_archive_bytes + 1)
    if len(data) > settings.max_archive_bytes:
        raise ValueError(f"archive too large (limit {settings.max_archive_bytes} bytes)")
    return data


def fetch_archive(source: str) -> bytes:
    """
    source가 로컬 zip 파일이면 그대로 읽고,
    GitHub URL이면 main → master 순서로 소스 zip을 내려받는다.
    """
    p = Path(source).expanduser()
    if p.is_file():
        return p.read_bytes()

    if not is_github_url(source):
        raise ValueError("source는 로컬 zip 파일, 디렉터리 또는 GitHub URL 이어야 합니다.")

    # 조직 repo에 따라 기본 브랜치가 다름
    last_err: Exception | None = None
    for ref in ("main", "master"):
        try:
            return _download(_github_zip_url(source, ref), token=settings.github_token)
        except URLError as e:
            last_err = e
            continue

    raise ArchiveDownloadError(f"GitHub zip 다운로드 실패: {last_err}")
