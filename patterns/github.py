"""
GitHub pull request / issue patterns. Both normalize to the owner/repo#number coordinate.
"""
from patterns.registry import RefPattern, PatternExample


def _coordinate(m) -> str:
    return f"{m.group(1)}/{m.group(2)}#{m.group(3)}"


github_pr_url = RefPattern(
    id='github-pr-url-v1',
    name='GitHub PR / Issue URL',
    description='Pull request and issue URLs on github.com',
    regex=r'github\.com/([A-Za-z0-9][A-Za-z0-9-]*)/([A-Za-z0-9_.-]+)/(?:pull|issues)/(\d+)',
    tool_type='github',
    confidence='high',
    normalize=_coordinate,
    examples=[
        PatternExample('https://github.com/acme/backend/pull/42', 'acme/backend#42'),
        PatternExample('Review: https://github.com/acme/repo/pull/99/files', 'acme/repo#99', source='slack'),
        PatternExample('Tracked in https://github.com/acme/web-app/issues/7', 'acme/web-app#7', source='jira'),
    ],
    negative_examples=[
        'https://github.com/acme/backend',
        'https://github.com/acme/backend/tree/main',
        'https://github.com/acme/backend/pulls',
    ],
)

github_ref_shorthand = RefPattern(
    id='github-ref-shorthand-v1',
    name='GitHub Reference Shorthand',
    description='owner/repo#123 cross-repository references',
    regex=r'(?<![\w/.-])([A-Za-z0-9][A-Za-z0-9-]*)/([A-Za-z0-9_.-]+)#(\d+)\b',
    tool_type='github',
    confidence='medium',
    normalize=_coordinate,
    examples=[
        PatternExample('See acme/backend#42 for details', 'acme/backend#42'),
        PatternExample('Closes acme/web-app#1234', 'acme/web-app#1234', source='github'),
    ],
    negative_examples=[
        'Fixes #42 in this repo',
        'acme/backend without a number',
        'https://acme.atlassian.net/wiki/spaces/ENG/pages/123/Doc#overview',
    ],
)

PATTERNS = [github_pr_url, github_ref_shorthand]
