"""Tests for exposure-side and outcome-side link estimation."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd
import pytest

from conftest import ScriptedFitter
from netcoupler import (
    Classification, Direction, GLMFitter, LinkEstimate, ModelResult, as_edge_table,
    estimate_exposure_links, estimate_network, estimate_outcome_links, standardize, starts_with,
)
from netcoupler.errors import InvalidColumnError
from netcoupler.links import LINK_COLUMNS

CONFOUNDERS = ["age", "sex"]


def _labels(links):
    return dict(zip(links["index_node"], links["classification"]))


def _edge_set(edge_table):
    return {
        frozenset((u, v))
        for u, v in edge_table[["from", "to"]].itertuples(index=False, name=None)
        if not pd.isna(v)
    }


@pytest.fixture(scope="module")
def sim_edges(std_simulated):
    graph = estimate_network(std_simulated, starts_with("metabolite_"))
    return as_edge_table(graph)


# ---------------------------------------------------------------------------
# Scripted fits: classification wiring
# ---------------------------------------------------------------------------

def test_three_node_scenario(abc_data, abc_edges, abc_fitter):
    links = estimate_exposure_links(abc_data, abc_edges, "E", abc_fitter)
    assert list(links.columns) == LINK_COLUMNS
    assert links["index_node"].tolist() == ["A", "B", "C"]
    assert _labels(links) == {"A": "direct", "B": "ambiguous", "C": "none"}

    a = links.set_index("index_node").loc["A"]
    assert a["neighbors"] == ("B",)
    assert a["n_neighbors"] == 1
    assert a["n_steps"] == 2
    assert a["estimate_unadjusted"] == 0.5
    assert a["estimate_adjusted"] == 0.4
    assert a["external_var"] == "E"
    assert a["direction"] == "exposure"


def test_isolated_node_given_explicitly(abc_data, abc_fitter):
    edges = pd.DataFrame({"from": ["A"], "to": ["B"]})
    links = estimate_exposure_links(abc_data, edges, "E", abc_fitter, nodes=["A", "B", "C"])
    assert _labels(links) == {"A": "direct", "B": "ambiguous", "C": "none"}
    c = links.set_index("index_node").loc["C"]
    assert c["n_neighbors"] == 0
    assert [r.adjustment_set for r in c["model_results"]] == [(), ()]


def test_one_row_per_node(abc_data, abc_edges, abc_fitter):
    links = estimate_exposure_links(abc_data, abc_edges, "E", abc_fitter)
    assert len(links) == 3
    assert links["index_node"].is_unique


def test_failed_node_is_undetermined_and_others_survive(abc_data, abc_edges, failing_fitter):
    links = estimate_exposure_links(abc_data, abc_edges, "E", failing_fitter)
    assert _labels(links) == {"A": "direct", "B": "undetermined", "C": "none"}
    b = links.set_index("index_node").loc["B"]
    assert "ModelFitFailure" in b["diagnostic"]
    assert np.isnan(b["estimate_unadjusted"])
    assert all(r.failed for r in b["model_results"])


def test_nonconverged_fit_is_undetermined(abc_data, abc_edges):
    fitter = ScriptedFitter({
        ("A", ("E",)): (0.5, 0.01),
        ("A", ("E", "B")): (0.4, 0.01),
        ("B", ("E",)): (0.3, 0.02),
        ("B", ("E", "A")): (0.3, 0.02),
        ("C", ("E",)): "nonconverged",
    })
    links = estimate_exposure_links(abc_data, abc_edges, "E", fitter)
    c = links.set_index("index_node").loc["C"]
    assert c["classification"] == "undetermined"
    assert "did not converge" in c["diagnostic"]


def test_outcome_side_puts_node_in_predictors(abc_data, abc_edges):
    fitter = ScriptedFitter({
        ("E", ("A",)): (0.5, 0.01),
        ("E", ("A", "B")): (0.5, 0.01),
        ("E", ("B",)): (0.5, 0.01),
        ("E", ("B", "A")): (0.5, 0.5),
        ("E", ("C",)): (0.5, 0.5),
    })
    links = estimate_outcome_links(abc_data, abc_edges, "E", fitter)
    assert (links["direction"] == "outcome").all()
    assert _labels(links) == {"A": "direct", "B": "ambiguous", "C": "none"}


def test_sign_rule_is_configurable_from_the_estimators(abc_data, abc_edges):
    fitter = ScriptedFitter({
        ("A", ("E",)): (0.5, 0.01),
        ("A", ("E", "B")): (-0.4, 0.01),
        ("B", ("E",)): (0.3, 0.02),
        ("B", ("E", "A")): (0.3, 0.02),
        ("C", ("E",)): (0.1, 0.2),
    })
    strict = estimate_exposure_links(abc_data, abc_edges, "E", fitter)
    relaxed = estimate_exposure_links(abc_data, abc_edges, "E", fitter,
                                      require_sign_consistency=False)
    assert _labels(strict)["A"] == "ambiguous"
    assert _labels(relaxed)["A"] == "direct"
    assert _labels(strict)["B"] == _labels(relaxed)["B"] == "direct"


def test_multilevel_categorical_exposure_is_undetermined(abc_data, abc_edges):
    data = abc_data.assign(grp=np.resize(np.array(["a", "b", "c"]), len(abc_data)))
    links = estimate_exposure_links(data, abc_edges, "grp")
    assert (links["classification"] == "undetermined").all()
    assert links["diagnostic"].str.contains("fitted terms").all()


def test_verbose_prints_progress(abc_data, abc_edges, abc_fitter, capsys):
    estimate_exposure_links(abc_data, abc_edges, "E", abc_fitter, verbose=True)
    out = capsys.readouterr().out
    assert "[exposure-links] 3 nodes" in out
    assert "direct=1" in out


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def test_missing_exposure_raises(abc_data, abc_edges, abc_fitter):
    with pytest.raises(InvalidColumnError, match="Exposure variable"):
        estimate_exposure_links(abc_data, abc_edges, "X", abc_fitter)


def test_missing_adjustment_variable_raises(abc_data, abc_edges, abc_fitter):
    with pytest.raises(InvalidColumnError, match="Adjustment variables"):
        estimate_exposure_links(abc_data, abc_edges, "E", abc_fitter, adjustment_vars=["age"])


def test_missing_node_raises(abc_data, abc_edges, abc_fitter):
    with pytest.raises(InvalidColumnError, match="Network variables"):
        estimate_exposure_links(abc_data, abc_edges, "E", abc_fitter, nodes=["A", "Z"])


def test_missing_neighbour_column_raises(abc_fitter):
    data = pd.DataFrame({"A": [0.1, 0.2, 0.3, 0.4], "E": [1.0, 0.0, 1.0, 0.0]})
    edges = pd.DataFrame({"from": ["A"], "to": ["B"]})
    with pytest.raises(InvalidColumnError, match="Network variables"):
        estimate_exposure_links(data, edges, "E", abc_fitter, nodes=["A"])


def test_bad_alpha_and_steps_raise(abc_data, abc_edges, abc_fitter):
    with pytest.raises(ValueError, match="alpha"):
        estimate_exposure_links(abc_data, abc_edges, "E", abc_fitter, alpha=1.5)
    with pytest.raises(ValueError, match="step policy"):
        estimate_exposure_links(abc_data, abc_edges, "E", abc_fitter, steps="all")


# ---------------------------------------------------------------------------
# Simulated cohort
# ---------------------------------------------------------------------------

def test_exposure_links_on_simulated_data(std_simulated, sim_edges):
    links = estimate_exposure_links(std_simulated, sim_edges, "exposure", adjustment_vars=CONFOUNDERS)
    labels = _labels(links)
    assert len(links) == 12
    assert labels["metabolite_1"] == "direct"
    assert labels["metabolite_6"] == "direct"
    assert set(labels.values()) <= {c.value for c in Classification}


def test_edge_row_order_does_not_change_results(std_simulated, sim_edges):
    shuffled = sim_edges.sample(frac=1.0, random_state=3).reset_index(drop=True)
    a = estimate_exposure_links(std_simulated, sim_edges, "exposure", adjustment_vars=CONFOUNDERS)
    b = estimate_exposure_links(std_simulated, shuffled, "exposure", adjustment_vars=CONFOUNDERS)
    a = a.set_index("index_node").sort_index()
    b = b.set_index("index_node").sort_index()
    assert a["classification"].tolist() == b["classification"].tolist()
    for col in ["estimate_unadjusted", "estimate_adjusted", "p_value_adjusted"]:
        np.testing.assert_allclose(a[col].to_numpy(), b[col].to_numpy(), rtol=1e-8)


def test_data_row_order_does_not_change_results(simulated):
    metabolites = starts_with("metabolite_")

    def pipeline(df):
        std = standardize(df, metabolites)
        edges = as_edge_table(estimate_network(std, metabolites))
        links = estimate_exposure_links(std, edges, "exposure", adjustment_vars=CONFOUNDERS)
        return edges, links.set_index("index_node").sort_index()

    edges_a, links_a = pipeline(simulated)
    edges_b, links_b = pipeline(simulated.sample(frac=1.0, random_state=11))
    assert _edge_set(edges_a) == _edge_set(edges_b)
    assert links_a["classification"].tolist() == links_b["classification"].tolist()
    np.testing.assert_allclose(links_a["estimate_adjusted"].to_numpy(),
                               links_b["estimate_adjusted"].to_numpy(), rtol=1e-8)


def test_parallel_matches_sequential(std_simulated, sim_edges):
    seq = estimate_exposure_links(std_simulated, sim_edges, "exposure", adjustment_vars=CONFOUNDERS)
    with ThreadPoolExecutor(max_workers=4) as pool:
        par = estimate_exposure_links(std_simulated, sim_edges, "exposure",
                                      adjustment_vars=CONFOUNDERS, executor=pool)
    object_cols = ["neighbors", "model_results"]
    pd.testing.assert_frame_equal(seq.drop(columns=object_cols), par.drop(columns=object_cols))
    for col in object_cols:
        assert seq[col].tolist() == par[col].tolist()


def test_outcome_links_logistic_with_odds_ratios(std_simulated, sim_edges):
    fitter = GLMFitter("binomial")
    log_odds = estimate_outcome_links(std_simulated, sim_edges, "outcome_binary", fitter,
                                      adjustment_vars=CONFOUNDERS)
    odds = estimate_outcome_links(std_simulated, sim_edges, "outcome_binary", fitter,
                                  adjustment_vars=CONFOUNDERS, exponentiate=True)
    row = odds.set_index("index_node").loc["metabolite_8"]
    assert row["classification"] == "direct"
    assert row["estimate_adjusted"] > 1.0
    assert row["conf_low_adjusted"] < row["estimate_adjusted"] < row["conf_high_adjusted"]
    np.testing.assert_allclose(
        odds["estimate_adjusted"].to_numpy(),
        np.exp(log_odds["estimate_adjusted"].to_numpy()),
    )


# ---------------------------------------------------------------------------
# LinkEstimate
# ---------------------------------------------------------------------------

def test_link_estimate_summary():
    results = tuple(
        ModelResult(node="m1", step=i, adjustment_set=adj, response="m1", term="exposure",
                    estimate=0.4, std_error=0.05, p_value=1e-6, n_obs=200)
        for i, adj in enumerate([(), ("m2",)])
    )
    est = LinkEstimate(
        node="m1", external_var="exposure", direction=Direction.EXPOSURE, neighbors=("m2",),
        adjustment_sets=((), ("m2",)), results=results,
        classification=Classification.DIRECT, alpha=0.05, diagnostic="p < 0.05 at all 2 steps",
    )
    text = est.summary()
    assert "exposure link  exposure -- m1: direct" in text
    assert "neighbors: m2" in text
    assert text.count("+0.4000") == 2

    rec = est.to_record()
    assert rec["n_steps"] == 2
    assert rec["estimate_adjusted"] == 0.4
    assert rec["n_obs_adjusted"] == 200
