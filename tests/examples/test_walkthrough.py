from examples.blog_app import STEPS, render, run_walkthrough


def results_by_title():
    return {result.title: result for result in run_walkthrough()}


def test_every_step_produces_a_result():
    results = run_walkthrough()
    assert len(results) == len(STEPS)
    assert [result.title for result in results] == [step.title for step in STEPS]


def test_error_steps_render_exception_messages():
    results = results_by_title()
    assert results["No matching object"].output == (
        "Post.DoesNotExist: Post matching query does not exist."
    )
    assert results["More than one matching object"].output.startswith(
        "Post.MultipleObjectsReturned: get() returned more than one Post -- it returned"
    )


def test_lazy_step_runs_no_sql():
    results = results_by_title()
    lazy = results["QuerySets are lazy"]
    assert lazy.queries == []
    assert "LIKE" in lazy.output
    assert "%post%" in lazy.output


def test_cached_results_are_not_requeried():
    results = results_by_title()
    assert len(results["Evaluating a QuerySet"].queries) == 1
    assert results["Evaluated results are cached"].queries == []


def test_count_step_runs_one_count_query():
    results = results_by_title()
    count = results["Count objects"]
    assert count.output == "2"
    assert len(count.queries) == 1
    assert count.queries[0].startswith("SELECT COUNT(*)")


def test_select_related_step_uses_join():
    results = results_by_title()
    step = results["Follow a foreign key in one query"]
    assert len(step.queries) == 1
    assert "JOIN" in step.queries[0]


def test_render_includes_snippets_and_sql():
    text = render(run_walkthrough())
    assert text.startswith("1. Retrieve a single object")
    assert '>>> user = User.objects.get(username="admin")' in text
    assert "    SQL: SELECT" in text


def test_get_or_create_and_update_or_create_report_created_flag():
    results = results_by_title()
    assert results["Get or create"].output.endswith(", True)")
    assert results["Get or create an existing object"].output == "(<User: admin>, False)"
    revised = results["Update or create"]
    assert revised.output == "(<Post: One more post, revised>, False)"
    assert any(query.startswith('UPDATE "blog_post"') for query in revised.queries)


def test_indexing_slicing_and_first_last_steps():
    results = results_by_title()
    indexed = results["Index a QuerySet"]
    assert indexed.output.startswith("<Post: ")
    assert len(indexed.queries) == 1
    assert indexed.queries[0].endswith("LIMIT 1")
    assert results["Slice with a step"].output.startswith("[<Post: ")
    first_last = results["First and last objects"]
    assert first_last.output.startswith("(<Post: ")
    assert len(first_last.queries) == 2


def test_none_and_to_sql_steps_run_no_sql():
    results = results_by_title()
    assert results["An empty QuerySet"].output == "<QuerySet []>"
    assert results["An empty QuerySet"].queries == []
    to_sql = results["SQL and parameters"]
    assert "LIKE ?" in to_sql.output
    assert to_sql.output.endswith("['Who%'])")
    assert to_sql.queries == []


def test_bulk_delete_step_reports_per_model_counts():
    results = results_by_title()
    assert results["Delete an object"].output == "(1, {'blog.Post': 1})"
    assert results["Delete many rows"].output == "(1, {'blog.Post': 1})"
