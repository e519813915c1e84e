"""
Unit tests for project_finder.transliterate
"""

from project_finder.transliterate import en_to_ru_variants, to_cyrillic, to_latin


class TestToLatin:
    def test_basic_word(self):
        assert to_latin("джира") == "dzhira"

    def test_multi_letter_outputs(self):
        assert to_latin("щука") == "shchuka"
        assert to_latin("хата") == "khata"

    def test_hard_and_soft_signs_dropped(self):
        assert to_latin("объект") == "obekt"
        assert to_latin("соль") == "sol"

    def test_lowercases_and_keeps_other_chars(self):
        assert to_latin("ФИН-2024") == "fin-2024"
        assert to_latin("Finance") == "finance"


class TestToCyrillic:
    def test_single_letters(self):
        assert to_cyrillic("fin") == "фин"

    def test_clusters_before_single_letters(self):
        assert to_cyrillic("shchi") == "щи"
        assert to_cyrillic("sharik") == "шарик"
        assert to_cyrillic("yama") == "яма"

    def test_unmapped_latin_letters_kept(self):
        assert to_cyrillic("jira") == "jира"

    def test_uppercase_input(self):
        assert to_cyrillic("HR") == "hр"
        assert to_cyrillic("PLATFORMA") == "платформа"


class TestEnToRuVariants:
    def test_contains_common_spellings(self):
        variants = en_to_ru_variants("jira")
        assert "джира" in variants
        assert "жира" in variants

    def test_unique_and_sorted_by_length(self):
        variants = en_to_ru_variants("yoga")
        assert len(variants) == len(set(variants))
        lengths = [len(v) for v in variants]
        assert lengths == sorted(lengths)

    def test_max_results_caps_output(self):
        assert len(en_to_ru_variants("jiyiyiyi", max_results=5)) <= 5

    def test_cluster_not_split(self):
        # "sh" is always "ш", never "с" + "х"
        assert all("сх" not in v for v in en_to_ru_variants("shop"))

    def test_empty_input(self):
        assert en_to_ru_variants("") == [""]
