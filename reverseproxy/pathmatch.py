from urllib.parse import quote

# Segment-wise path matching used by the routing rules.
#
# Paths are split on '/', the leading empty segment of an absolute path is
# dropped, and so is a trailing empty segment left by a trailing slash:
#
#   "/"          -> []
#   "/foo"       -> ["foo"]
#   "/foo/bar/"  -> ["foo", "bar"]
#
# Both prefix and candidate are expected to be absolute; callers check first.

_PATH_SAFE = "/:@!$&'()*+,;=~"


def is_abs(path: str) -> bool:
    return path.startswith('/')


def _segments(path: str) -> list[str]:
    parts = path.split('/')[1:]
    if parts and parts[-1] == '':
        parts.pop()
    return parts


def _same(a: str, b: str, case_sensitive: bool) -> bool:
    if case_sensitive:
        return a == b
    return a.casefold() == b.casefold()


def path_contains(source_prefix: str, candidate_path: str, case_sensitive: bool) -> bool:
    """
    Check whether candidate_path starts with every segment of source_prefix.
    "/foo" contains "/foo" and "/foo/bar" but not "/foobar".
    """
    prefix = _segments(source_prefix)
    candidate = _segments(candidate_path)
    if len(candidate) < len(prefix):
        return False
    return all(_same(p, c, case_sensitive) for p, c in zip(prefix, candidate))


def relative_path(source_prefix: str, candidate_path: str, case_sensitive: bool) -> str:
    """
    Segments of candidate_path left over once source_prefix is removed,
    joined by '/' without a leading separator. Only meaningful when
    path_contains() holds for the same arguments; otherwise the result is
    whatever segments follow the prefix length.
    """
    prefix = _segments(source_prefix)
    candidate = _segments(candidate_path)
    return '/'.join(candidate[len(prefix):])


def clean_path(path: str) -> str:
    """
    Normalize a request path: resolve '.' and '..', drop empty segments and
    anchor the result at '/'. '..' never climbs above the root.
    """
    stack: list[str] = []
    for segment in path.split('/'):
        if segment in ('', '.'):
            continue
        if segment == '..':
            if stack:
                stack.pop()
            continue
        stack.append(segment)
    return '/' + '/'.join(stack)


def join_path(base: str, rel: str) -> str:
    """
    Join a destination base path and a remainder, then clean the result:
    one '/' between parts, '.' and '..' resolved, no trailing slash.
    """
    return clean_path(base + '/' + rel)


def escape_path(path: str) -> str:
    """Percent-encode a decoded path for use in a URL; '/' stays a separator."""
    return quote(path, safe=_PATH_SAFE)
