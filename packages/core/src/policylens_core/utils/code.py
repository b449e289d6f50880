import fnmatch

# Binary assets and generated lock files: their added lines are hashes and
# encoded blobs that look like secrets to an entropy check.
UNSCANNED_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".zip",
    ".tar",
    ".gz",
    ".7z",
    ".lock",  # e.g. poetry.lock, Cargo.lock
}

UNSCANNED_FILENAMES = {"package-lock.json", "pnpm-lock.yaml", "go.sum"}


def is_scannable_file(file_name: str | None) -> bool:
    if not file_name:
        return True
    lowered = file_name.lower()
    if lowered.rsplit("/", 1)[-1] in UNSCANNED_FILENAMES:
        return False
    return not any(lowered.endswith(ext) for ext in UNSCANNED_EXTENSIONS)


def is_excluded(filename: str | None, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "tests/fixtures/*.pem"
    - fnmatch globs on the basename: "*.snap"
    - Directory names/prefixes: "vendor/", "fixtures" (matches any file within that tree)
    """
    if not filename:
        return False
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False
