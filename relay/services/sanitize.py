import re

# markers the assistant still emits now and then, despite being told not to
_FILE_CITATION = re.compile(r"【\d+(?::\d+)?†source】")
_ANY_LENTICULAR = re.compile(r"【[^】]*】")
_BRACKET_NUMBER = re.compile(r"\s*\[\d+\]")
_PAREN_NUMBER = re.compile(r"\s*\(\d+\)")


def strip_citations(text: str, trim: bool = True) -> str:
    out = _FILE_CITATION.sub("", text or "")
    out = _ANY_LENTICULAR.sub("", out)
    out = _BRACKET_NUMBER.sub("", out)
    out = _PAREN_NUMBER.sub("", out)
    return out.strip() if trim else out
