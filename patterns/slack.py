"""
Slack channel patterns (archive links and channelId fields in serialized raw data).
"""
from patterns.registry import RefPattern, PatternExample

slack_channel_url = RefPattern(
    id='slack-channel-v1',
    name='Slack Channel Archive Link',
    description='Channel ids from slack.com/archives/<id> message and thread links',
    regex=r'slack\.com/archives/([CGD][A-Z0-9]{8,})',
    tool_type='slack',
    confidence='high',
    normalize=lambda m: f"slack:{m.group(1)}",
    examples=[
        PatternExample('https://acme.slack.com/archives/C12345678', 'slack:C12345678'),
        PatternExample('Thread: https://acme.slack.com/archives/C0ENGINEERING/p1700000000123456', 'slack:C0ENGINEERING', source='jira'),
    ],
    negative_examples=[
        'https://acme.slack.com/archives/',
        'https://slack.com/help/articles/123',
    ],
)

slack_rawdata = RefPattern(
    id='slack-rawdata-v1',
    name='Slack Raw Data Channel ID',
    description='Slack channelId field in JSON raw data',
    regex=r'"channelId"\s*:\s*"([CGD][A-Z0-9]{8,})"',
    tool_type='slack',
    confidence='medium',
    normalize=lambda m: f"slack:{m.group(1)}",
    examples=[
        PatternExample('{"channelId": "C0ENGINEERING", "ts": "1700000000.1234"}', 'slack:C0ENGINEERING', source='slack-rawdata'),
    ],
    negative_examples=[
        '{"channelId": "general"}',
    ],
)

PATTERNS = [slack_channel_url, slack_rawdata]
