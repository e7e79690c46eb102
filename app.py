import gradio as gr

from doc_schema_extractor.config import settings
from doc_schema_extractor.exporters import EXPORT_FORMATS
from doc_schema_extractor.handlers import (
    export_history_handler,
    export_result_handler,
    handle_api_key_change,
    handle_documents_upload,
    handle_file_select,
    handle_infer_schema,
    handle_replay,
    handle_schema_check,
    handle_schema_file_upload,
    handle_template_delete,
    handle_template_save,
    handle_template_select,
    handle_use_example_file,
    handle_use_example_schema,
    preview_result_handler,
    run_extract_all_handler,
    run_extraction_handler,
    show_history_entry_handler,
)
from doc_schema_extractor.logging_setup import configure_logging
from doc_schema_extractor.schema import schema_to_json
from doc_schema_extractor.templates import TemplateStore
from doc_schema_extractor.workbench import Workbench

configure_logging(settings.log_level)

# --- UI Definition ---
with gr.Blocks(title="Document Schema Extractor") as demo:
    gr.Markdown("# Document Schema Extractor")
    gr.Markdown("Upload documents, define a JSON schema and an instruction, and extract structured data with Gemini.")

    # State
    workbench_state = gr.State(Workbench())
    template_store_state = gr.State(TemplateStore())

    with gr.Tab("Extract"):
        with gr.Row():
            # Left Panel: Templates & Batch
            with gr.Column(scale=1):
                gr.Markdown("### 1. Templates")
                template_selector = gr.Dropdown(
                    label="Template",
                    choices=[t.name for t in TemplateStore().list()],
                    value=None,
                    interactive=True,
                )
                with gr.Accordion("Save as template", open=False):
                    template_name = gr.Textbox(label="Name")
                    template_description = gr.Textbox(label="Description")
                    with gr.Row():
                        save_template_btn = gr.Button("Save")
                        delete_template_btn = gr.Button("Delete selected")

                gr.Markdown("### 2. Documents")
                document_input = gr.File(label="Upload Documents", file_count="multiple")
                example_file_btn = gr.Button("Use example document")
                file_selector = gr.Radio(label="Batch", choices=[], interactive=True)

            # Middle Panel: Editor
            with gr.Column(scale=2):
                gr.Markdown("### 3. Prompt (instruction)")
                prompt_input = gr.Textbox(value=settings.default_prompt, lines=4, show_label=False)
                example_schema_btn = gr.Button("Use example")

                gr.Markdown("### 4. JSON schema definition")
                schema_editor = gr.Code(
                    value=schema_to_json(Workbench().schema),
                    language="json",
                    label="Fields (name, type, children, description, required)",
                )
                with gr.Row():
                    check_schema_btn = gr.Button("Check schema")
                    infer_schema_btn = gr.Button("Infer from result")
                    schema_file_input = gr.File(label="Load schema JSON", file_types=[".json"])

                with gr.Row():
                    extract_btn = gr.Button("Run extraction", variant="primary")
                    extract_all_btn = gr.Button("Extract all pending")
                status_msg = gr.Textbox(label="Status", interactive=False)

            # Right Panel: Results
            with gr.Column(scale=2):
                gr.Markdown("### 5. Extracted results")
                result_json = gr.JSON(label="Result")
                preview_policy = gr.Radio(
                    label="Array of records",
                    choices=[("Join into one cell", "join"), ("One row per element", "expand")],
                    value="join",
                )
                preview_btn = gr.Button("Load table preview")
                preview_table = gr.Dataframe(label="Table preview", interactive=False)

                gr.Markdown("### 6. Export")
                output_format = gr.Radio(choices=list(EXPORT_FORMATS), value="CSV", label="Output Format")
                export_btn = gr.Button("Export", variant="primary")
                download_output = gr.File(label="Download Result")

    with gr.Tab("History"):
        history_selector = gr.Dropdown(label="Extraction", choices=[], value=None, interactive=True)
        history_table = gr.Dataframe(
            headers=["Timestamp", "File", "Entry"],
            datatype=["str", "str", "str"],
            interactive=False,
            label="History",
        )
        history_json = gr.JSON(label="Extracted data")
        with gr.Row():
            replay_btn = gr.Button("Reuse schema and prompt")
            history_format = gr.Radio(choices=list(EXPORT_FORMATS), value="CSV", label="Output Format")
            history_export_btn = gr.Button("Export")
        history_download = gr.File(label="Download Result")
        history_status = gr.Textbox(label="Status", interactive=False)

    with gr.Tab("Settings"):
        api_key_input = gr.Textbox(label="Gemini API key", type="password")
        api_key_status = gr.Textbox(label="Status", interactive=False)

    # --- Events ---
    document_input.upload(
        fn=handle_documents_upload,
        inputs=[document_input, workbench_state],
        outputs=[workbench_state, file_selector, status_msg],
    )

    example_file_btn.click(
        fn=handle_use_example_file,
        inputs=[workbench_state],
        outputs=[workbench_state, file_selector, status_msg],
    )

    file_selector.change(
        fn=handle_file_select,
        inputs=[file_selector, workbench_state],
        outputs=[workbench_state, result_json, status_msg],
    )

    example_schema_btn.click(
        fn=handle_use_example_schema,
        inputs=[workbench_state],
        outputs=[workbench_state, prompt_input, schema_editor],
    )

    check_schema_btn.click(fn=handle_schema_check, inputs=[schema_editor], outputs=[status_msg])

    infer_schema_btn.click(
        fn=handle_infer_schema,
        inputs=[file_selector, workbench_state],
        outputs=[schema_editor, status_msg],
    )

    schema_file_input.upload(
        fn=handle_schema_file_upload,
        inputs=[schema_file_input],
        outputs=[schema_editor, status_msg],
    )

    extraction_outputs = [workbench_state, result_json, status_msg, file_selector, history_selector, history_table]
    extract_btn.click(
        fn=run_extraction_handler,
        inputs=[file_selector, prompt_input, schema_editor, workbench_state],
        outputs=extraction_outputs,
    )

    extract_all_btn.click(
        fn=run_extract_all_handler,
        inputs=[prompt_input, schema_editor, workbench_state],
        outputs=extraction_outputs,
    )

    preview_btn.click(
        fn=preview_result_handler,
        inputs=[file_selector, preview_policy, workbench_state],
        outputs=[preview_table],
    )

    export_btn.click(
        fn=export_result_handler,
        inputs=[file_selector, output_format, workbench_state],
        outputs=[download_output, status_msg],
    )

    template_selector.change(
        fn=handle_template_select,
        inputs=[template_selector, template_store_state, workbench_state],
        outputs=[workbench_state, prompt_input, schema_editor, status_msg],
    )

    save_template_btn.click(
        fn=handle_template_save,
        inputs=[template_name, template_description, schema_editor, prompt_input, template_store_state],
        outputs=[template_store_state, template_selector, status_msg],
    )

    delete_template_btn.click(
        fn=handle_template_delete,
        inputs=[template_selector, template_store_state],
        outputs=[template_store_state, template_selector, status_msg],
    )

    history_selector.change(
        fn=show_history_entry_handler,
        inputs=[history_selector, workbench_state],
        outputs=[history_json],
    )

    replay_btn.click(
        fn=handle_replay,
        inputs=[history_selector, workbench_state],
        outputs=[workbench_state, prompt_input, schema_editor, file_selector, history_status],
    )

    history_export_btn.click(
        fn=export_history_handler,
        inputs=[history_selector, history_format, workbench_state],
        outputs=[history_download, history_status],
    )

    api_key_input.change(
        fn=handle_api_key_change,
        inputs=[api_key_input, workbench_state],
        outputs=[workbench_state, api_key_status],
    )

if __name__ == "__main__":
    demo.launch(server_port=settings.server_port)
