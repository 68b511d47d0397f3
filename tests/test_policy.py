"""Tests for threshold policies and gallery search."""

import pytest


class TestThresholdPolicy:
    """Test cases for ThresholdPolicy."""

    def test_threshold_inclusive(self):
        """Test a score equal to the threshold is accepted."""
        from facematch.matching import ThresholdPolicy

        policy = ThresholdPolicy(65.0)

        assert policy.accepts(65.0)
        assert policy.accepts(99.9)
        assert not policy.accepts(64.99)

    def test_configured_policies(self):
        """Test the update policy is stricter than recognition."""
        from facematch.matching import ThresholdPolicy

        assert ThresholdPolicy.for_update().threshold > ThresholdPolicy.for_recognition().threshold


class TestFindBestMatch:
    """Test cases for find_best_match."""

    def _gallery(self, make_face, shifts):
        from facematch.features import extract_face_features

        return [
            (f"person-{i}", extract_face_features(make_face(dx=dx)))
            for i, dx in enumerate(shifts)
        ]

    def test_threshold_decides_match(self, make_face):
        """Test the same best score is accepted at 65 and rejected at 70."""
        from facematch.features import extract_features
        from facematch.matching import SimilarityScorer, ThresholdPolicy, find_best_match

        # 50 px shift -> 66.67
        gallery = self._gallery(make_face, [50.0])
        query = extract_features(make_face())
        scorer = SimilarityScorer(100.0)

        loose = find_best_match(
            query, gallery, ThresholdPolicy(65.0), scorer, features_of=lambda c: c[1]
        )
        strict = find_best_match(
            query, gallery, ThresholdPolicy(70.0), scorer, features_of=lambda c: c[1]
        )

        assert loose.matched
        assert loose.candidate[0] == "person-0"
        assert loose.similarity == pytest.approx(200.0 / 3.0)
        assert not strict.matched
        assert strict.similarity == pytest.approx(loose.similarity)
        assert strict.threshold == 70.0

    def test_best_candidate_selected(self, make_face):
        """Test the highest scoring candidate wins regardless of position."""
        from facematch.features import extract_features
        from facematch.matching import SimilarityScorer, ThresholdPolicy, find_best_match

        gallery = self._gallery(make_face, [80.0, 10.0, 40.0])
        result = find_best_match(
            extract_features(make_face()),
            gallery,
            ThresholdPolicy(65.0),
            SimilarityScorer(100.0),
            features_of=lambda c: c[1],
        )

        assert result.matched
        assert result.candidate[0] == "person-1"

    def test_first_candidate_wins_ties(self, make_face):
        """Test an equal later score does not replace the current best."""
        from facematch.features import extract_features
        from facematch.matching import SimilarityScorer, ThresholdPolicy, find_best_match

        gallery = self._gallery(make_face, [5.0, 5.0])
        result = find_best_match(
            extract_features(make_face()),
            gallery,
            ThresholdPolicy(65.0),
            SimilarityScorer(100.0),
            features_of=lambda c: c[1],
        )

        assert result.candidate[0] == "person-0"

    def test_zero_scores_never_selected(self, make_face):
        """Test candidates with nothing in common leave no best match."""
        from facematch.features import LandmarkType, extract_face_features
        from facematch.matching import SimilarityScorer, ThresholdPolicy, find_best_match

        query = extract_face_features(make_face(types=[LandmarkType.LEFT_EYE]))
        gallery = [
            extract_face_features(make_face(types=[LandmarkType.RIGHT_EYE])),
            "not a record",
        ]
        result = find_best_match(query, gallery, ThresholdPolicy(0.0), SimilarityScorer(100.0))

        assert result.candidate is None
        assert result.similarity == 0.0
        assert not result.matched

    def test_empty_gallery(self, make_face):
        """Test searching an empty gallery."""
        from facematch.features import extract_features
        from facematch.matching import SimilarityScorer, ThresholdPolicy, find_best_match

        result = find_best_match(
            extract_features(make_face()), [], ThresholdPolicy(65.0), SimilarityScorer(100.0)
        )

        assert not result.matched
        assert result.candidate is None


class TestConfirmSamePerson:
    """Test cases for confirm_same_person."""

    @pytest.mark.parametrize("dx,expected", [(0.0, True), (40.0, True), (50.0, False)])
    def test_update_threshold(self, make_face, dx, expected):
        """Test the 70 threshold on old vs new photo."""
        from facematch.features import extract_face_features
        from facematch.matching import SimilarityScorer, ThresholdPolicy, confirm_same_person

        result = confirm_same_person(
            extract_face_features(make_face()),
            extract_face_features(make_face(dx=dx)),
            ThresholdPolicy(70.0),
            SimilarityScorer(100.0),
        )

        assert result.matched is expected
        assert result.candidate is None
