import gradio as gr
from functools import partial

from mapforge.config import configure_logging, get_settings
from mapforge.persistence import FileStorage
from mapforge.project import DIRECTIONS
from mapforge.handlers_catalog import (
    apply_catalog_text_handler,
    clear_catalog_handler,
    import_schema_handler,
    load_fixed_fields_handler,
)
from mapforge.handlers_project import (
    GRID_HEADERS,
    add_round_handler,
    add_row_handler,
    apply_sheet_handler,
    delete_row_handler,
    export_analysis_handler,
    export_json_handler,
    export_xlsx_handler,
    import_json_handler,
    import_xlsx_handler,
    open_project_handler,
    remove_round_handler,
    save_grid_handler,
    status_legend,
    switch_round_handler,
    toggle_rubrics_handler,
)

settings = get_settings()
configure_logging(settings.log_level)
storage = FileStorage(settings.storage_dir)

# --- UI Definition ---
with gr.Blocks(title="MapForge") as demo:
    gr.Markdown("# MapForge – Mapping Studio")
    gr.Markdown("Build field mappings between the internal interface and a customer schema, then export them to Excel or JSON.")

    # State
    project_state = gr.State()
    fixed_fields_state = gr.State(value=[])
    imported_sheets_state = gr.State(value=[])

    with gr.Row():
        system_input = gr.Textbox(label="System", placeholder="translogica")
        direction_input = gr.Dropdown(label="Direction", choices=list(DIRECTIONS), value="inbound")
        message_input = gr.Textbox(label="Message", placeholder="DESADV D96A")
        open_btn = gr.Button("Open Project", variant="primary")
    status_msg = gr.Textbox(label="Status", interactive=False)

    with gr.Tab("Catalogs"):
        with gr.Row():
            with gr.Column(scale=1):
                gr.Markdown("### Customer schema (editable side)")
                gr.Markdown("Import an XSD, XML or JSON file, or enter one field per line.")
                schema_file = gr.File(label="Schema File", file_types=[".xsd", ".xml", ".json"])
                catalog_input = gr.Textbox(label="Fields", lines=12, placeholder="e.g. Customer/Order/Id")
                with gr.Row():
                    apply_catalog_btn = gr.Button("Apply", variant="primary")
                    clear_catalog_btn = gr.Button("Clear")
                catalog_preview = gr.JSON(label="Catalog Tree")
            with gr.Column(scale=1):
                gr.Markdown("### Internal interface (fixed side)")
                fixed_file = gr.File(label="Interface Definition", file_types=[".xml", ".xsd", ".json"])
                fixed_preview = gr.JSON(label="Interface Definition (M = mandatory, O = optional)")

    with gr.Tab("Mapping"):
        with gr.Row():
            round_selector = gr.Dropdown(label="Round", choices=[], interactive=True)
            add_round_btn = gr.Button("+ Round")
            remove_round_btn = gr.Button("Remove Round", variant="stop")
        mapping_grid = gr.Dataframe(
            headers=GRID_HEADERS,
            datatype=["str"] * len(GRID_HEADERS),
            col_count=(len(GRID_HEADERS), "fixed"),
            interactive=True,
            label="Mapping Grid",
        )
        gr.Markdown(f"Status values: {status_legend()}")
        with gr.Row():
            save_grid_btn = gr.Button("Save Grid", variant="primary")
            add_row_btn = gr.Button("+ Row")
            delete_row_id = gr.Textbox(label="Row ID", scale=2)
            delete_row_btn = gr.Button("Delete Row", variant="stop")
        gr.Markdown(
            "### Address rubrics (inbound)\n"
            "Enabling a rubric adds its template rows to the active round. "
            "Disabling it deletes every row of that rubric in all rounds, including edited ones."
        )
        rubric_selector = gr.CheckboxGroup(label="Rubrics", choices=[])

    with gr.Tab("Import / Export"):
        with gr.Row():
            with gr.Column():
                gr.Markdown("### JSON project")
                export_json_btn = gr.Button("Save JSON")
                json_download = gr.File(label="JSON Project")
                json_upload = gr.File(label="Load JSON", file_types=[".json"])
            with gr.Column():
                gr.Markdown("### Excel")
                export_xlsx_btn = gr.Button("Export Mapping (xlsx)")
                export_analysis_btn = gr.Button("Export Analysis (xlsx)")
                xlsx_download = gr.File(label="Workbook")
                xlsx_upload = gr.File(label="Import Excel", file_types=[".xlsx"])
                sheet_selector = gr.Dropdown(label="Imported Sheet", choices=[], interactive=True)
                apply_sheet_btn = gr.Button("Apply Sheet to Active Round")

    view_outputs = [project_state, mapping_grid, round_selector, rubric_selector, catalog_input, status_msg]
    catalog_outputs = [project_state, catalog_input, catalog_preview, status_msg]

    open_btn.click(
        fn=partial(open_project_handler, storage=storage),
        inputs=[system_input, direction_input, message_input],
        outputs=view_outputs,
    )

    schema_file.upload(
        fn=partial(import_schema_handler, storage=storage),
        inputs=[project_state, schema_file],
        outputs=catalog_outputs,
    )

    apply_catalog_btn.click(
        fn=partial(apply_catalog_text_handler, storage=storage),
        inputs=[project_state, catalog_input],
        outputs=catalog_outputs,
    )

    clear_catalog_btn.click(
        fn=partial(clear_catalog_handler, storage=storage),
        inputs=[project_state],
        outputs=catalog_outputs,
    )

    fixed_file.upload(
        fn=load_fixed_fields_handler,
        inputs=[fixed_file],
        outputs=[fixed_fields_state, fixed_preview, status_msg],
    )

    save_grid_btn.click(
        fn=partial(save_grid_handler, storage=storage),
        inputs=[project_state, mapping_grid],
        outputs=view_outputs,
    )

    add_row_btn.click(
        fn=partial(add_row_handler, storage=storage),
        inputs=[project_state, mapping_grid],
        outputs=view_outputs,
    )

    delete_row_btn.click(
        fn=partial(delete_row_handler, storage=storage),
        inputs=[project_state, mapping_grid, delete_row_id],
        outputs=view_outputs,
    )

    add_round_btn.click(
        fn=partial(add_round_handler, storage=storage),
        inputs=[project_state, mapping_grid],
        outputs=view_outputs,
    )

    round_selector.input(
        fn=partial(switch_round_handler, storage=storage),
        inputs=[project_state, mapping_grid, round_selector],
        outputs=view_outputs,
    )

    remove_round_btn.click(
        fn=partial(remove_round_handler, storage=storage),
        inputs=[project_state, round_selector],
        outputs=view_outputs,
    )

    rubric_selector.input(
        fn=partial(toggle_rubrics_handler, storage=storage),
        inputs=[project_state, mapping_grid, rubric_selector, fixed_fields_state],
        outputs=view_outputs,
    )

    export_json_btn.click(
        fn=export_json_handler,
        inputs=[project_state],
        outputs=[json_download, status_msg],
    )

    json_upload.upload(
        fn=partial(import_json_handler, storage=storage),
        inputs=[project_state, json_upload],
        outputs=view_outputs,
    )

    export_xlsx_btn.click(
        fn=export_xlsx_handler,
        inputs=[project_state],
        outputs=[xlsx_download, status_msg],
    )

    export_analysis_btn.click(
        fn=export_analysis_handler,
        inputs=[project_state],
        outputs=[xlsx_download, status_msg],
    )

    xlsx_upload.upload(
        fn=partial(import_xlsx_handler, storage=storage),
        inputs=[project_state, xlsx_upload],
        outputs=[*view_outputs, imported_sheets_state, sheet_selector],
    )

    apply_sheet_btn.click(
        fn=partial(apply_sheet_handler, storage=storage),
        inputs=[project_state, imported_sheets_state, sheet_selector],
        outputs=view_outputs,
    )

if __name__ == "__main__":
    demo.launch(server_name=settings.server_name, server_port=settings.server_port)
