"""
Slug, meta-tag and validation helpers
"""

from marketplace.business.seo.seo_utils import (
    generate_slug, generate_meta_title, generate_meta_description,
    extract_keywords, generate_alt_text, validate_seo_data, SLUG_MAX_LENGTH,
)


def test_generate_slug():
    assert generate_slug("  Men's Running Shoes -- 2024 ") == 'mens-running-shoes-2024'
    assert generate_slug('snake_case_name') == 'snake-case-name'
    assert generate_slug('') == ''
    assert generate_slug(None) == ''
    assert len(generate_slug('x' * 150)) == 100


def test_generate_meta_title():
    assert generate_meta_title('Short title') == 'Short title'
    long_title = 'A' * 80
    assert generate_meta_title(long_title) == 'A' * 57 + '...'
    assert len(generate_meta_title(long_title)) == 60


def test_generate_meta_description_strips_html_and_truncates():
    assert generate_meta_description('<p>Hello   <b>world</b></p>') == 'Hello world'

    text = 'Short sentence here. ' * 10
    result = generate_meta_description(text)
    assert len(result) <= 160
    assert result.endswith('.')

    words = 'word ' * 60
    result = generate_meta_description(words)
    assert result.endswith('...')
    assert len(result) <= 163


def test_extract_keywords_drops_stop_words_and_short_words():
    assert extract_keywords('The best cast iron skillet for the kitchen') == [
        'best', 'cast', 'iron', 'skillet', 'kitchen']
    assert len(extract_keywords(' '.join(f'word{i}' for i in range(20)))) == 10


def test_generate_alt_text():
    assert generate_alt_text('Skillet') == 'Skillet - Buy online at Marketplace'
    assert generate_alt_text('Skillet', 1) == 'Skillet - Image 2 - Buy online at Marketplace'
    assert len(generate_alt_text('x' * 200)) == 125


def test_validate_seo_data():
    result = validate_seo_data(title='Too short', description='d' * 80, slug='Bad Slug')
    assert result['title'] == {'valid': False, 'message': 'Title too short (minimum 10 characters)'}
    assert result['description'] == {'valid': True}
    assert result['slug']['valid'] is False

    assert validate_seo_data(slug='good-slug-1') == {'slug': {'valid': True}}
    assert validate_seo_data() == {}


def test_unique_slugs_stay_within_column_length(db, make_product):
    title = 'Handcrafted Oak Dining Table ' * 6
    slugs = [make_product(title.strip()).slug for _ in range(3)]

    assert len(set(slugs)) == 3
    assert slugs[1].endswith('-1') and slugs[2].endswith('-2')
    for slug in slugs:
        assert len(slug) <= SLUG_MAX_LENGTH
        assert validate_seo_data(slug=slug)['slug']['valid'] is True
