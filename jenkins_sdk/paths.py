"""URL path and query construction for the Jenkins remote API."""

from urllib.parse import quote, quote_plus

# Characters a path segment may keep unescaped
_SEGMENT_SAFE = "$&+:=@"

JOB_FIELDS = "name,url,color,lastBuild[number,result,timestamp,duration],healthReport[description,score]"


def tree_param(*fields: str) -> str:
    """Build the ``tree=`` selector limiting which fields the server returns.

    >>> tree_param("jobs[name]", "url")
    'tree=jobs%5Bname%5D%2Curl'
    """
    return "tree=" + quote_plus(",".join(fields), safe="")


def escape_segment(segment: str) -> str:
    """Percent-escape a single path segment (space becomes %20)."""
    return quote(segment, safe=_SEGMENT_SAFE)


def job_path(name: str) -> str:
    """Encode a possibly foldered job name for use after ``/job/``.

    Folder separators map onto nested ``/job/`` segments:

    >>> job_path("team/app build")
    'team/job/app%20build'
    """
    return "/job/".join(escape_segment(part) for part in name.split("/"))


def with_query(path: str, query: str) -> str:
    return f"{path}?{query}" if query else path
