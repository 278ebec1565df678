from ankify.cards import Card, parse_cards, split_tags
from ankify.cards.parser import parse_fallback, parse_multi_line, parse_table


def test_markers_are_case_insensitive():
    cards = parse_cards('q: lower\na: case\nANNOTATION: loud\nTags: #t')
    assert cards == [Card(question='lower', answer='case', annotation='loud', tags=['t'])]


def test_incomplete_blocks_are_dropped():
    text = 'Q: has answer\nA: yes\n\nQ: no answer\n\nA: orphan answer\n\nQ:\nA: empty question'
    cards = parse_cards(text)
    assert cards == [Card(question='has answer', answer='yes')]


def test_blank_lines_with_whitespace_separate_blocks():
    text = 'Q: one\nA: 1\n   \t\nQ: two\nA: 2\n\n\n\nQ: three\nA: 3'
    assert [c.question for c in parse_cards(text)] == ['one', 'two', 'three']


def test_indented_lines_and_crlf():
    text = '  Q: indented\r\n  A: answer  \r\n\r\n\tQ: tabbed\r\n\tA: too\r\n'
    assert parse_cards(text) == [Card(question='indented', answer='answer'), Card(question='tabbed', answer='too')]


def test_annotation_and_tags_between_question_and_answer():
    text = 'Q: Capital of France?\nannotation: on the Seine\ntags: geo, europe\nA: Paris\n\nQ: 2+2\ntags: #math\nA: 4'
    cards = parse_cards(text)
    assert cards == [
        Card(question='Capital of France?', answer='Paris', annotation='on the Seine', tags=['geo', 'europe']),
        Card(question='2+2', answer='4', tags=['math']),
    ]


def test_later_marker_in_same_block_wins():
    cards = parse_multi_line('Q: first\nA: one\nQ: second\nA: two')
    assert cards == [Card(question='second', answer='two')]


def test_unknown_lines_in_block_are_ignored():
    cards = parse_multi_line('Card 1\nQ: x\nsome note\nA: y')
    assert cards == [Card(question='x', answer='y')]


def test_hash_tags_win_over_commas():
    assert split_tags('#a, b #c') == ['a, b', 'c']
    assert split_tags(' , a,,  b , ') == ['a', 'b']
    assert split_tags('') == []


def test_table_skips_short_and_incomplete_rows():
    text = 'Q A annotation tags\nonly-one-column\nfoo\t\tnote\n\tbar\nok\tfine'
    assert parse_table(text) == [Card(question='ok', answer='fine')]


def test_table_ignores_blank_annotation_and_extra_columns():
    cards = parse_table('Q\tA\tannotation\ttags\nq\ta\t \ta, b\textra')
    assert cards == [Card(question='q', answer='a', tags=['a', 'b'])]


def test_table_header_only():
    assert parse_cards('Q\tA\tannotation\ttags\n') == []


def test_table_requires_header_on_first_line():
    text = 'Cards below\nQ\tA\tannotation\ttags\nfoo\tbar'
    # falls through to the line parser, which finds nothing
    assert parse_cards(text) == []


def test_fallback_keeps_empty_question_and_answer():
    cards = parse_fallback('Q: A:')
    assert cards == [Card(question='', answer='')]


def test_fallback_tags_only_split_on_hash():
    cards = parse_fallback('Q: x A: y tags: a, b')
    assert cards[0].tags == ['a, b']
    cards = parse_fallback('Q: x A: y tags: #a #b')
    assert cards[0].tags == ['a', 'b']


def test_fallback_annotation_without_tags():
    cards = parse_fallback('Q: x A: y annotation: see chapter 2')
    assert cards[0].answer == 'y'
    assert cards[0].annotation == 'see chapter 2'
    assert cards[0].tags is None


def test_fallback_tags_before_annotation():
    cards = parse_fallback('Q: x A: y tags: #t annotation: late')
    assert cards[0].answer == 'y'
    assert cards[0].annotation == 'late'
    assert cards[0].tags == ['t annotation: late']


def test_fallback_qa_pattern_beats_delimiter():
    cards = parse_fallback('Q: what is ::: ? A: a delimiter')
    assert cards == [Card(question='what is ::: ?', answer='a delimiter')]


def test_fallback_delimiter_uses_first_two_pieces():
    assert parse_fallback('a:::b:::c') == [Card(question='a', answer='b')]
    assert parse_fallback(':::') == [Card(question='', answer='')]


def test_numbered_inline_cards():
    text = '1. Q: What is H2O? A: Water\n2. Q: What is NaCl? A: Salt'
    assert [(c.question, c.answer) for c in parse_cards(text)] == [('What is H2O?', 'Water'), ('What is NaCl?', 'Salt')]


def test_parse_is_repeatable():
    text = 'Q: x\nA: y\ntags: #a'
    assert parse_cards(text) == parse_cards(text)
    first = parse_cards(text)
    first[0].tags.append('mutated')
    assert parse_cards(text)[0].tags == ['a']
