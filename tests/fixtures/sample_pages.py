"""Sample Confluence storage format pages for testing.

These fixtures represent Confluence storage format (XHTML) content
with the macros the converter understands, plus a few it doesn't.

XHTML format uses Confluence-specific namespaces:
- ac: namespace for Confluence macros
- ri: namespace for resource identifiers (images, attachments, pages)

Macro fixtures spell out every parameter value explicitly (including
defaults) so that a publish round trip must reproduce them exactly.
"""

# Simple page with headings, paragraphs, and lists
SAMPLE_PAGE_SIMPLE = """
<h1>Test Page</h1>
<p>This is a simple test page with <strong>basic</strong> formatting.</p>
<h2>Section 1</h2>
<ul>
<li>Item 1</li>
<li>Item 2</li>
</ul>
<ol>
<li>First</li>
<li>Second</li>
</ol>
"""

SAMPLE_PAGE_WITH_TABLE = """
<table>
<tbody>
<tr><th>Name</th><th>Role</th></tr>
<tr><td>Ana</td><td>Developer</td></tr>
</tbody>
</table>
"""

PANEL_MACRO = (
    '<ac:structured-macro ac:name="panel" ac:schema-version="1" ac:macro-id="a1">'
    '<ac:parameter ac:name="title">Scope</ac:parameter>'
    '<ac:rich-text-body><p>Only the public API is covered.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
)

INFO_MACRO = (
    '<ac:structured-macro ac:name="info" ac:schema-version="1">'
    '<ac:parameter ac:name="title">Heads up</ac:parameter>'
    '<ac:rich-text-body><p>Read this <em>first</em>.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
)

NOTE_MACRO = (
    '<ac:structured-macro ac:name="note" ac:schema-version="1">'
    '<ac:rich-text-body><p>Remember the release freeze.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
)

WARNING_MACRO = (
    '<ac:structured-macro ac:name="warning" ac:schema-version="1">'
    '<ac:parameter ac:name="title">Careful</ac:parameter>'
    '<ac:rich-text-body><p>This drops the table.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
)

TIP_MACRO = (
    '<ac:structured-macro ac:name="tip" ac:schema-version="1">'
    '<ac:rich-text-body><p>Use the cache.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
)

EXPAND_MACRO = (
    '<ac:structured-macro ac:name="expand" ac:schema-version="1">'
    '<ac:parameter ac:name="title">Details</ac:parameter>'
    '<ac:rich-text-body><ul><li>One</li><li>Two</li></ul></ac:rich-text-body>'
    '</ac:structured-macro>'
)

CODE_MACRO = (
    '<ac:structured-macro ac:name="code" ac:schema-version="1">'
    '<ac:parameter ac:name="language">python</ac:parameter>'
    '<ac:parameter ac:name="linenumbers">true</ac:parameter>'
    '<ac:plain-text-body><![CDATA[if a < b and c > d:\n    print("done")]]></ac:plain-text-body>'
    '</ac:structured-macro>'
)

CODE_MACRO_WITH_PLACEHOLDER = (
    '<ac:structured-macro ac:name="code" ac:schema-version="1">'
    '<ac:parameter ac:name="language">text</ac:parameter>'
    '<ac:plain-text-body><![CDATA[Hello {{x}}]]></ac:plain-text-body>'
    '</ac:structured-macro>'
)

TEMPLATE_CODE_MACRO = (
    '<ac:structured-macro ac:name="code" ac:schema-version="1">'
    '<ac:parameter ac:name="language">template</ac:parameter>'
    '<ac:plain-text-body><![CDATA[Hello {{x}}]]></ac:plain-text-body>'
    '</ac:structured-macro>'
)

HTML_MACRO = (
    '<ac:structured-macro ac:name="html" ac:schema-version="1">'
    '<ac:plain-text-body><![CDATA[<div class="banner">Beta</div>]]></ac:plain-text-body>'
    '</ac:structured-macro>'
)

TOC_MACRO = (
    '<ac:structured-macro ac:name="toc" ac:schema-version="1">'
    '<ac:parameter ac:name="maxLevel">3</ac:parameter>'
    '<ac:parameter ac:name="outline">true</ac:parameter>'
    '</ac:structured-macro>'
)

CHILDREN_MACRO = (
    '<ac:structured-macro ac:name="children" ac:schema-version="1">'
    '<ac:parameter ac:name="sort">title</ac:parameter>'
    '<ac:parameter ac:name="all">true</ac:parameter>'
    '</ac:structured-macro>'
)

STATUS_MACRO = (
    '<p>State: <ac:structured-macro ac:name="status" ac:schema-version="1">'
    '<ac:parameter ac:name="colour">Green</ac:parameter>'
    '<ac:parameter ac:name="title">Done</ac:parameter>'
    '<ac:parameter ac:name="subtle">true</ac:parameter>'
    '</ac:structured-macro></p>'
)

ANCHOR_MACRO = (
    '<p><ac:structured-macro ac:name="anchor" ac:schema-version="1">'
    '<ac:parameter ac:name="">intro</ac:parameter>'
    '</ac:structured-macro>Introduction</p>'
)

LAYOUT = (
    '<ac:layout>'
    '<ac:layout-section ac:type="two_equal">'
    '<ac:layout-cell><p>Left</p></ac:layout-cell>'
    '<ac:layout-cell><p>Right</p></ac:layout-cell>'
    '</ac:layout-section>'
    '<ac:layout-section ac:type="single">'
    '<ac:layout-cell>' + PANEL_MACRO + '</ac:layout-cell>'
    '</ac:layout-section>'
    '</ac:layout>'
)

IMAGE_ATTACHMENT = (
    '<p><ac:image ac:alt="Diagram" ac:width="400">'
    '<ri:attachment ri:filename="diagram.png" />'
    '</ac:image></p>'
)

IMAGE_URL = (
    '<p><ac:image ac:align="center">'
    '<ri:url ri:value="https://example.com/logo.png" />'
    '</ac:image></p>'
)

PAGE_LINK = (
    '<p>See <ac:link>'
    '<ri:page ri:content-title="Release Notes" ri:space-key="TEAM" />'
    '<ac:plain-text-link-body><![CDATA[the notes]]></ac:plain-text-link-body>'
    '</ac:link> for details.</p>'
)

TABS = (
    '<ac:structured-macro ac:name="tabs-group" ac:schema-version="1">'
    '<ac:parameter ac:name="disposition">horizontal</ac:parameter>'
    '<ac:rich-text-body>'
    '<ac:structured-macro ac:name="tab-pane" ac:schema-version="1">'
    '<ac:parameter ac:name="name">Linux</ac:parameter>'
    '<ac:rich-text-body><p>Use apt.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
    '<ac:structured-macro ac:name="tab-pane" ac:schema-version="1">'
    '<ac:parameter ac:name="name">macOS</ac:parameter>'
    '<ac:rich-text-body><p>Use brew.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
    '</ac:rich-text-body>'
    '</ac:structured-macro>'
)

# Macros the registry does not know

UNSUPPORTED_INLINE_MACRO = (
    '<p><ac:structured-macro ac:name="jira" ac:schema-version="1">'
    '<ac:parameter ac:name="key">ABC-1</ac:parameter>'
    '<ac:parameter ac:name="server">Jira</ac:parameter>'
    '</ac:structured-macro></p>'
)

UNSUPPORTED_RICH_MACRO = (
    '<ac:structured-macro ac:name="details" ac:schema-version="1">'
    '<ac:parameter ac:name="id">owners</ac:parameter>'
    '<ac:rich-text-body><p>Owner: Sam</p><p>Team: Platform</p></ac:rich-text-body>'
    '</ac:structured-macro>'
)

UNSUPPORTED_PLAIN_MACRO = (
    '<ac:structured-macro ac:name="sql-query" ac:schema-version="1">'
    '<ac:parameter ac:name="">reporting</ac:parameter>'
    '<ac:plain-text-body><![CDATA[SELECT * FROM t WHERE a < 3;]]></ac:plain-text-body>'
    '</ac:structured-macro>'
)

USER_LINK = (
    '<p>Ask <ac:link><ri:user ri:account-id="5b10a2844c20165700ede21g" />'
    '<ac:plain-text-link-body><![CDATA[Sam]]></ac:plain-text-link-body>'
    '</ac:link> first.</p>'
)

# Directive next to list and table markup
LIST_BEFORE_MACRO = (
    '<ul><li>one</li><li>two</li></ul>' + INFO_MACRO
)

TABLE_BEFORE_MACRO = SAMPLE_PAGE_WITH_TABLE + NOTE_MACRO

MACRO_INSIDE_LIST_ITEM = (
    '<ul><li>Install'
    '<ac:structured-macro ac:name="info" ac:schema-version="1">'
    '<ac:rich-text-body><p>Needs admin rights.</p></ac:rich-text-body>'
    '</ac:structured-macro>'
    '</li><li>Run</li></ul>'
)

# Every supported macro, for round-trip tests
SUPPORTED_MACRO_FIXTURES = {
    "panel": PANEL_MACRO,
    "info": INFO_MACRO,
    "note": NOTE_MACRO,
    "warning": WARNING_MACRO,
    "tip": TIP_MACRO,
    "expand": EXPAND_MACRO,
    "code": CODE_MACRO,
    "code-with-placeholder": CODE_MACRO_WITH_PLACEHOLDER,
    "html": HTML_MACRO,
    "toc": TOC_MACRO,
    "children": CHILDREN_MACRO,
    "status": STATUS_MACRO,
    "anchor": ANCHOR_MACRO,
    "layout": LAYOUT,
    "image-attachment": IMAGE_ATTACHMENT,
    "image-url": IMAGE_URL,
    "page-link": PAGE_LINK,
    "tabs": TABS,
}

MALFORMED_PAGE = "<p>one</p>\n<p>two</b>"
