from ankify.cards import append_cards_section


def test_append_cards_section():
    doc = '# Cell biology\n\nNotes...'
    assert append_cards_section(doc, 'Q: x\nA: y') == '# Cell biology\n\nNotes...\n\n## Anki Cards\n\nQ: x\nA: y'


def test_append_to_empty_document():
    assert append_cards_section(None, 'a:::b') == '\n\n## Anki Cards\n\na:::b'
