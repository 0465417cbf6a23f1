# ==============================================
# Jira document format (ADF) conversion helpers
# ==============================================

from typing import Any, Dict, List, Optional

# Section emojis used by the generated descriptions; such lines become headings
HEADING_MARKERS = ('🎯', '📌', '✅', '🏷️', '👥', '🔧', '🛠️', '🎨', '📊')

# Our priority names -> Jira priority names
OUTBOUND_PRIORITY_MAP = {
    'Low': 'Lowest',
    'Medium': 'Medium',
    'High': 'High',
    'Critical': 'Highest'
}

# Jira priority names -> our priority names
INBOUND_PRIORITY_MAP = {
    'Highest': 'High',
    'High': 'High',
    'Medium': 'Medium',
    'Low': 'Low',
    'Lowest': 'Low'
}


def map_priority_to_jira(priority: Optional[str]) -> str:
    """Map a generated priority to a Jira priority name (default Medium)"""
    return OUTBOUND_PRIORITY_MAP.get(priority or '', 'Medium')


def map_priority_from_jira(priority: Optional[str]) -> str:
    """Map a Jira priority name back to Low/Medium/High (default Medium)"""
    return INBOUND_PRIORITY_MAP.get(priority or '', 'Medium')


def _text(text: str, bold: bool = False) -> Dict[str, Any]:
    node = {'type': 'text', 'text': text}
    if bold:
        node['marks'] = [{'type': 'strong'}]
    return node


def _heading_text(line: str) -> Optional[str]:
    for marker in HEADING_MARKERS:
        if line.startswith(marker):
            return line[len(marker):].strip()
    return None


def markdown_to_adf(markdown: str) -> List[Dict[str, Any]]:
    """
    Convert the generated markdown-ish description into ADF content nodes

    Rules:
        - emoji-prefixed lines become level-3 headings
        - "- " lines are grouped into a bulletList
        - lines wrapped in ** ** become bold text
        - other lines are collected into paragraphs
        - blank lines close the current paragraph / list

    Returns:
        List of ADF block nodes (the ``content`` of a ``doc`` node)
    """
    content: List[Dict[str, Any]] = []
    paragraph: List[Dict[str, Any]] = []
    bullet_list: Optional[Dict[str, Any]] = None

    def flush_paragraph():
        nonlocal paragraph
        if paragraph:
            content.append({'type': 'paragraph', 'content': paragraph})
            paragraph = []

    def flush_list():
        nonlocal bullet_list
        if bullet_list:
            content.append(bullet_list)
            bullet_list = None

    for line in (markdown or '').split('\n'):
        trimmed = line.strip()

        if not trimmed:
            flush_paragraph()
            flush_list()
            continue

        heading = _heading_text(trimmed)
        if heading is not None:
            flush_paragraph()
            flush_list()
            content.append({
                'type': 'heading',
                'attrs': {'level': 3},
                'content': [_text(heading)] if heading else []
            })
        elif trimmed.startswith('- '):
            if bullet_list is None:
                bullet_list = {'type': 'bulletList', 'content': []}
            bullet_list['content'].append({
                'type': 'listItem',
                'content': [{'type': 'paragraph', 'content': [_text(trimmed[2:].strip())]}]
            })
        else:
            flush_list()
            if len(trimmed) > 4 and trimmed.startswith('**') and trimmed.endswith('**'):
                paragraph.append(_text(trimmed[2:-2], bold=True))
            else:
                paragraph.append(_text(trimmed))

    flush_paragraph()
    flush_list()

    return content


def markdown_to_adf_document(markdown: str) -> Dict[str, Any]:
    """Wrap converted content into a full ADF ``doc`` node"""
    return {'type': 'doc', 'version': 1, 'content': markdown_to_adf(markdown)}


def adf_to_text(node: Any) -> str:
    """
    Flatten an ADF document (or plain string) into text

    Block nodes are separated by newlines, list items are prefixed with "- ".
    """
    if node is None:
        return ''
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return '\n'.join(filter(None, (adf_to_text(child) for child in node)))
    if not isinstance(node, dict):
        return str(node)

    node_type = node.get('type')
    if node_type == 'text':
        return node.get('text', '')
    if node_type == 'hardBreak':
        return '\n'

    children = node.get('content', [])

    if node_type in ('paragraph', 'heading'):
        return ''.join(adf_to_text(child) for child in children)
    if node_type == 'listItem':
        return '- ' + ' '.join(filter(None, (adf_to_text(child) for child in children)))

    return '\n'.join(filter(None, (adf_to_text(child) for child in children)))
