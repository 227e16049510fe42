"""
Confluence page patterns (page URLs and pageId fields in serialized raw data).
"""
from patterns.registry import RefPattern, PatternExample

confluence_page_url = RefPattern(
    id='confluence-page-v1',
    name='Confluence Page URL',
    description='Confluence page ids from /wiki/spaces/.../pages/<id> and viewpage.action URLs',
    regex=r'(?:/wiki/spaces/[A-Za-z0-9_~-]+/pages/|/pages/viewpage\.action\?pageId=)(\d+)',
    tool_type='confluence',
    confidence='high',
    normalize=lambda m: f"confluence:{m.group(1)}",
    examples=[
        PatternExample('Design: https://acme.atlassian.net/wiki/spaces/ENG/pages/987654/Design', 'confluence:987654', source='jira'),
        PatternExample('https://acme.atlassian.net/wiki/spaces/~jdoe/pages/111222', 'confluence:111222'),
        PatternExample('https://wiki.acme.com/pages/viewpage.action?pageId=445566', 'confluence:445566'),
    ],
    negative_examples=[
        'https://acme.atlassian.net/wiki/spaces/ENG/overview',
        'https://acme.atlassian.net/wiki/spaces/ENG/pages/',
    ],
)

# rawData is serialized to JSON before matching, so structured ids show up as "pageId": "123"
confluence_rawdata = RefPattern(
    id='confluence-rawdata-v1',
    name='Confluence Raw Data Page ID',
    description='Confluence pageId field in JSON raw data',
    regex=r'"pageId"\s*:\s*"?(\d+)"?',
    tool_type='confluence',
    confidence='medium',
    normalize=lambda m: f"confluence:{m.group(1)}",
    examples=[
        PatternExample('{"pageId": "123456789", "title": "Runbook"}', 'confluence:123456789', source='confluence-rawdata'),
        PatternExample('{"pageId":789012}', 'confluence:789012', source='confluence-rawdata'),
    ],
    negative_examples=[
        '{"pageId": "abc"}',
    ],
)

PATTERNS = [confluence_page_url, confluence_rawdata]
